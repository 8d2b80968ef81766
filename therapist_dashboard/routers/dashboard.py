# dashboard router: aggregated overview for the authenticated therapist
# a fetch failure still answers 200 with error=true and the zero view

import logging

from fastapi import APIRouter, Depends

from therapist_dashboard.models.dashboard import DashboardState, DashboardSummary
from therapist_dashboard.services.dashboard_service import DashboardAggregator
from therapist_dashboard.services.db import Database, get_db
from therapist_dashboard.dependencies import require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/dashboard", tags=["dashboard"])


async def _load_state(current_user: dict, db: Database) -> DashboardState:
    aggregator = DashboardAggregator(db)
    state = await aggregator.refresh(current_user.get("id"))
    if state.error:
        logger.warning(f"Serving empty dashboard for {current_user.get('id')} after a fetch failure")
    return state


@router.get("", response_model=DashboardState)
async def get_dashboard(
    current_user: dict = Depends(require_role("therapist")),
    db: Database = Depends(get_db),
):
    """pending requests, upcoming sessions, patient count and recent messages"""
    return await _load_state(current_user, db)


@router.get("/summary", response_model=DashboardSummary)
async def get_dashboard_summary(
    current_user: dict = Depends(require_role("therapist")),
    db: Database = Depends(get_db),
):
    """headline card counts only"""
    state = await _load_state(current_user, db)
    return state.view.summary
