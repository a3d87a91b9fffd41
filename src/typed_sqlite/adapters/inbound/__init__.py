"""Inbound adapters - entry points driving the application."""

from typed_sqlite.adapters.inbound.probe_cli import app, main

__all__ = [
    "app",
    "main",
]
