"""Core application components."""

from .config import settings, get_settings, resolve_auth_secret

__all__ = ["settings", "get_settings", "resolve_auth_secret"]
