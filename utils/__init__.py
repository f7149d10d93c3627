"""Shared helpers for Usage Stats."""
