"""Scratch storage for intermediate artifacts."""
