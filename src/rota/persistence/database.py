"""Database persistence for stop collection snapshots."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from ..config import settings
from ..db.supabase import get_supabase_client


def save_snapshot_to_database(user_id: str, stops: list[dict[str, Any]]) -> bool:
    """Upsert the serialized collection for ``user_id``. Returns False when not stored."""
    supabase = get_supabase_client()
    if not supabase:
        return False

    try:
        supabase.table(settings.supabase_snapshot_table).upsert(
            {
                "user_id": user_id,
                "stops": stops,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
            on_conflict="user_id",
        ).execute()
        return True
    except Exception as e:
        logging.error(f"Failed to save snapshot for user '{user_id}': {e}")
        return False


def load_snapshot_from_database(user_id: str) -> list[dict[str, Any]] | None:
    """Return the stored collection or None when missing or unavailable."""
    supabase = get_supabase_client()
    if not supabase:
        return None

    try:
        response = (
            supabase.table(settings.supabase_snapshot_table)
            .select("stops")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logging.error(f"Failed to load snapshot for user '{user_id}': {e}")
        return None

    rows = response.data or []
    if not rows:
        return None
    return rows[0].get("stops") or []
