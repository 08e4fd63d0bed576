# app/routers/audit.py

"""
Audit routes.

Run the reconciliation engine over an uploaded audit session, or preview
how a single row would reconcile.
"""

import logging
from typing import Any, Union

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from app.database import get_audit_session, get_cookies, get_orders, get_sellers
from app.core.matching import reconcile, reconcile_rows
from app.core.normalizers import has_valid_headers, normalize_audit_rows, normalize_order_row
from app.dependencies import get_current_user
from app.models import AuditSession, InternalTransaction
from app.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()
router = APIRouter()


class MatchesRequest(BaseModel):
    audit_session_id: Union[str, int, None] = Field(None, alias="auditSessionId")
    season_id: Union[str, int, None] = Field(None, alias="seasonId")

    class Config:
        populate_by_name = True


class PreviewRequest(BaseModel):
    season_id: Union[str, int, None] = Field(None, alias="seasonId")
    headers: list[str] = Field(default_factory=list)
    row: list[Any] = Field(default_factory=list)

    class Config:
        populate_by_name = True


def _engine_options() -> dict:
    return {
        "fuzzy_max_distance": settings.fuzzy_max_distance,
        "date_tolerance_days": settings.date_tolerance_days,
        "one_field_threshold": settings.partial_one_field_threshold,
        "two_field_threshold": settings.partial_two_field_threshold,
    }


async def _load_season(season_id: Union[str, int]) -> tuple[list[InternalTransaction], list[dict], list[dict]]:
    """Fetch orders, sellers and cookies for a season."""
    try:
        orders = await get_orders(season_id)
        sellers = await get_sellers(season_id)
        cookies = await get_cookies(season_id)
    except Exception as e:
        logger.error(f"Failed to load season {season_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load season data")

    transactions = [normalize_order_row(o) for o in orders]
    return transactions, sellers, cookies


# ============================================
# Main Audit Endpoint
# ============================================

@router.post("/matches")
async def audit_matches(request: MatchesRequest, user_id: str = Depends(get_current_user)):
    """
    Reconcile an uploaded audit session against the season's orders.

    1. Loads the session (scoped to the user)
    2. Loads orders, sellers and cookies for the season
    3. Runs the matching engine in the threadpool
    """
    if not request.audit_session_id or not request.season_id:
        raise HTTPException(status_code=400, detail="Missing required parameters")

    session_row = await get_audit_session(request.audit_session_id, user_id)
    if session_row is None:
        raise HTTPException(status_code=404, detail="Audit session not found")

    session = AuditSession.model_validate(session_row)

    if len(session.parsed_rows) > settings.max_audit_rows:
        raise HTTPException(
            status_code=413,
            detail=f"Audit file has {len(session.parsed_rows)} rows; the limit is {settings.max_audit_rows}",
        )

    transactions, sellers, cookies = await _load_season(request.season_id)

    # CPU-bound
    result = await run_in_threadpool(
        reconcile_rows,
        session.parsed_rows,
        session.headers,
        transactions,
        sellers,
        cookies,
        **_engine_options(),
    )

    logger.info(
        f"Audit session {session.id} for user {user_id}: "
        f"{result.match_count} perfect matches out of {result.total_audit_rows} rows"
    )

    return result.to_dict()


# ============================================
# Single Row Preview
# ============================================

@router.post("/preview")
async def audit_preview(request: PreviewRequest, user_id: str = Depends(get_current_user)):
    """Normalize and reconcile a single row against the season's orders."""
    if not request.season_id:
        raise HTTPException(status_code=400, detail="Missing required parameters")

    if not has_valid_headers(request.headers):
        raise HTTPException(status_code=400, detail="Invalid audit file headers")

    transactions, sellers, cookies = await _load_season(request.season_id)

    records = normalize_audit_rows([{"data": request.row}], request.headers, cookies)
    record = records[0]

    result = reconcile([record], transactions, sellers, cookies, **_engine_options())

    return {
        "record": record.model_dump(),
        "is_matchable": record.is_matchable,
        "matches": [m.model_dump(by_alias=True) for m in result.matches],
    }
