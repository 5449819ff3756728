"""Aliice operations suite API."""
