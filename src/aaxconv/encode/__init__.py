"""Wrappers for the external media engine and cover embedder."""
