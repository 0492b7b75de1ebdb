"""HTTP API schemas."""
