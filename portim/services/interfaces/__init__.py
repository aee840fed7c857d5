"""Interface registry."""

from portim.services.interfaces.registry import InterfaceRegistry

__all__ = ["InterfaceRegistry"]
