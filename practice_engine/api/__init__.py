"""HTTP API for the practice engine."""
