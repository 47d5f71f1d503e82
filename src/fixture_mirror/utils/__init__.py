"""Shared helpers for Fixture Mirror."""
