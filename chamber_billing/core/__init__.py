"""
Core modules for Chamber Billing.

This package contains the tariff tables, case records, the cost engine,
period statistics and order documents.
"""
