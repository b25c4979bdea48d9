"""FastAPI application for the commit ledger."""
