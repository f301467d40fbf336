"""HTTP API for Viberank."""
