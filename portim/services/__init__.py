"""Routing services."""
