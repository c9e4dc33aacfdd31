"""Retrieval and quote assembly pipeline."""
