# app/database.py

from functools import lru_cache

from supabase import create_client, Client
from app.config import get_settings


@lru_cache()
def get_supabase_admin() -> Client:
    """Admin client (bypasses RLS - use carefully)."""
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_role_key)


# ============================================
# Database helper functions
# ============================================

async def get_audit_session(session_id: str | int, user_id: str) -> dict | None:
    """Get an audit session owned by the user."""
    response = (
        get_supabase_admin()
        .table("audit_sessions")
        .select("*")
        .eq("id", session_id)
        .eq("profile", user_id)
        .execute()
    )
    return response.data[0] if response.data else None


async def get_orders(season_id: str | int) -> list[dict]:
    """Get all recorded orders for a season."""
    response = (
        get_supabase_admin()
        .table("orders")
        .select("*")
        .eq("season", season_id)
        .order("order_date")
        .execute()
    )
    return response.data or []


async def get_sellers(season_id: str | int) -> list[dict]:
    """Get the season's sellers."""
    response = get_supabase_admin().table("sellers").select("*").eq("season", season_id).execute()
    return response.data or []


async def get_cookies(season_id: str | int) -> list[dict]:
    """Get the cookie varieties offered in a season."""
    response = get_supabase_admin().table("cookies").select("*").eq("season", season_id).execute()
    return response.data or []
