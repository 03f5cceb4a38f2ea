"""
Core module for application configuration and quiz logic.

Note: auth is not imported at package level to avoid circular imports.
Import it directly: from quizdesk.core.auth import ...
"""
from .config import settings

__all__ = ["settings"]
