"""Database helpers."""

from .errors import is_unique_violation
from .session import get_engine, get_session, get_session_maker

__all__ = ["get_engine", "get_session", "get_session_maker", "is_unique_violation"]
