"""
Azure utilization pricing for Partner Center.

Joins a customer subscription's Azure utilization records with the Azure
rate card to produce priced line items.
"""

__version__ = "0.1.0"
