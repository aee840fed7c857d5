"""Session routing."""

from portim.services.sessions.router import SessionRouter

__all__ = ["SessionRouter"]
