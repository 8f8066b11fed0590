"""State engine for the school transactions dashboard."""
