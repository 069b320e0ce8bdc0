"""HTTP API for ideagen."""
