"""Shared contracts, configuration and errors."""
