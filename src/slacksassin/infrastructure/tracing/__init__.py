"""Tracing infrastructure module."""

from slacksassin.infrastructure.tracing.setup import setup_tracing

__all__ = ["setup_tracing"]
