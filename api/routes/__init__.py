"""API routers, grouped by version."""
