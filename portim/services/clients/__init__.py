"""Client identity resolution."""

from portim.services.clients.path import PathExpression, is_valid_path, parse_path, resolve_path
from portim.services.clients.resolver import ClientResolver

__all__ = ["ClientResolver", "PathExpression", "is_valid_path", "parse_path", "resolve_path"]
