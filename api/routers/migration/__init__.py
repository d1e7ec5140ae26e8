"""Migration API routes package.

Import the router via get_router() to avoid circular imports.
"""

from fastapi import APIRouter

_router = None


def get_router() -> APIRouter:
    """Create and return the migration router.

    Uses lazy imports to avoid circular dependencies.
    """
    global _router
    if _router is not None:
        return _router

    from api.routers.migration.supabase import router as supabase_router

    combined = APIRouter()
    combined.include_router(supabase_router)
    _router = combined
    return _router


__all__ = ["get_router"]
