"""Runtime helpers for the HTTP surface."""
