"""Billing projections over the rental ledger."""
