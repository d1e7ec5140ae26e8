"""API routers package.

This package contains the API routers organized into logical subpackages:
- migration: Supabase migration control (start, pause, status)
"""

# Note: Routers are imported directly in api/app.py to avoid circular imports
# This package serves as documentation and provides a clean namespace

__all__ = [
    "migration",
]
