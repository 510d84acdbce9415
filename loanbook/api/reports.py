"""
Reporting endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query

from .system import LoanbookSystem, get_system
from .schemas import collections_to_response, history_to_response, portfolio_to_response


router = APIRouter()


@router.get("/portfolio")
async def portfolio_summary(
    today: Optional[date] = Query(None),
    system: LoanbookSystem = Depends(get_system)
):
    """Dashboard totals and counts"""
    return portfolio_to_response(system.reporting_engine.portfolio_summary(today or date.today()))


@router.get("/collections")
async def collections(
    today: Optional[date] = Query(None),
    system: LoanbookSystem = Depends(get_system)
):
    """Active loans due today or late, and upcoming ones"""
    return collections_to_response(system.reporting_engine.collections_view(today or date.today()))


@router.get("/history")
async def history(
    today: Optional[date] = Query(None),
    system: LoanbookSystem = Depends(get_system)
):
    """Paid loans with realised profit"""
    return history_to_response(system.reporting_engine.history_summary(), today or date.today())
