"""Tenant-scoped pantry inventory storage with an append-only activity ledger."""

__version__ = "0.1.0"
