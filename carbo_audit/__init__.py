"""Carbo Audit — JCM AWD methodology compliance checks for carbon-credit project documents."""

__version__ = "0.1.0"
