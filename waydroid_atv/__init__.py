"""Waydroid + Android TV one-shot installer"""

__version__ = "1.0.0"
