"""
Integration test modules

Tests for the payment gateway adapters and the gateway factory.
"""
