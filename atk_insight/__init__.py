"""Inventory demand & reorder intelligence for ATK consumables."""

__version__ = "0.1.0"
