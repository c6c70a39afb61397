"""
Unified Payments API

Single REST interface over multiple payment gateways (Stripe, Paystack).
"""

__version__ = "1.0.0"
