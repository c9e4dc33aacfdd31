"""Priced bill-of-materials assembly on top of an LLM backend."""
