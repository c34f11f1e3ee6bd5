"""Insured time-travel service: versioned records with point-in-time reads."""

__version__ = "0.1.0"
