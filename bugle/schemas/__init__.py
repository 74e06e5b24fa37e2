"""Public schema exports."""

from .auth import TokenBundle

__all__ = ["TokenBundle"]
