"""Ledger domain logic: commit types, admission pipeline, retention."""
