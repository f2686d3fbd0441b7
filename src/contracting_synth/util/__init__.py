"""Shared helpers for hashing, sampling and summary files."""
