"""
Core modules for Azure utilization pricing.

This package contains the data models, error taxonomy, pagination helpers
and the usage-to-price reconciliation.
"""
