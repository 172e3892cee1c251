"""
users.py — Per-user dashboard statistics.

Routes:
  GET /api/v1/users/{user_id}/stats — upload / report counts and score summary
"""

from fastapi import APIRouter, Depends, HTTPException

from vericlip.core.database import get_db
from vericlip.models.verification import UserStats
from vericlip.services.report_store import ReportStore

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/{user_id}/stats", response_model=UserStats)
async def get_stats(user_id: str, db=Depends(get_db)):
    """Verified = score ≥ 70, flagged = score < 50, pending = pending or processing uploads."""
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return await ReportStore(db).user_stats(user_id)
