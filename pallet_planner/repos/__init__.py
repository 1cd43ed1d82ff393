"""
Repository layer for data access operations.

This package contains repository modules that encapsulate database queries
for the catalog, the order book, reference data and persisted pallets.
"""
