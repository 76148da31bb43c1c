"""Version 1 REST endpoints, mounted under /api/v1 by api/main.py."""
