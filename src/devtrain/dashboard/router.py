"""Dashboard endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devtrain.auth.dependencies import get_current_user
from devtrain.dashboard.schemas import DashboardStatsResponse
from devtrain.dashboard.service import get_dashboard_stats
from devtrain.database import get_session
from devtrain.db.models import User

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DashboardStatsResponse:
    """Progress summary for the caller's topics."""
    return await get_dashboard_stats(db, user.id)
