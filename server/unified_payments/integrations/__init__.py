"""
Integration modules for the Unified Payments API

Contains adapters for external payment providers:
- Stripe (global card processor)
- Paystack (regional African processor)
"""
