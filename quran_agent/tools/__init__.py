"""Retrieval tools, registry and executor."""
