"""HTTP API for the TRMNL plugin."""
