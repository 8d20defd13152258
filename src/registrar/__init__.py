"""Registrar - enrollment and academic record engine."""

__version__ = "0.1.0"
