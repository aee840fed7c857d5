"""Portim - conversation routing between interfaces."""

__version__ = "0.1.0"
