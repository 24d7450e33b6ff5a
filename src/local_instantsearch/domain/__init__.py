"""Domain models for the search adapter."""
