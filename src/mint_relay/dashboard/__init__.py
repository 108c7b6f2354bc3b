"""HTTP health and status endpoint."""
