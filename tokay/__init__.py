"""Tokay resilience platform client"""

__version__ = "1.0.0"
