"""Adapters layer - concrete implementations of ports."""
