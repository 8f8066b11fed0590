"""Client for the school collection REST API."""
