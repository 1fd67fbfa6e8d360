"""
Dashboard + grades router: read-only, any authenticated user.
"""

from fastapi import APIRouter, Depends
from app.core.dependencies import get_assignment_engine, get_dashboard
from app.core.security import get_current_user
from app.models.entities import User
from app.services.assignments import AssignmentEngine
from app.services.dashboard import DashboardAggregator
from app.utils.response import success_response

router = APIRouter(prefix="/api", tags=["Dashboard"])


@router.get("/dashboard")
async def get_dashboard_view(
    user: User = Depends(get_current_user),
    aggregator: DashboardAggregator = Depends(get_dashboard),
):
    view = aggregator.compute_dashboard(user)
    return success_response(data=view.model_dump(mode="json"))


@router.get("/grades")
async def get_grades(
    user: User = Depends(get_current_user),
    engine: AssignmentEngine = Depends(get_assignment_engine),
):
    return success_response(data={"grades": engine.grades(user)})
