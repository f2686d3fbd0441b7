"""Relational synthetic data generation for a web-contracting business dataset."""

__version__ = "0.1.0"
