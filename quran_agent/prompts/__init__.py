"""Prompt text and user-facing labels."""
