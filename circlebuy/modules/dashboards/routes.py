from fastapi import APIRouter, Depends
from circlebuy.database.supabase_client import get_supabase
from circlebuy.modules.dashboards.schemas import Dashboard
from circlebuy.modules.dashboards.service import DashboardService
from circlebuy.core.dependencies import get_current_session
from circlebuy.core.session import UserSession
from supabase import Client

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def get_dashboard_service(supabase: Client = Depends(get_supabase)) -> DashboardService:
    return DashboardService(supabase)


@router.get("", response_model=Dashboard)
async def get_dashboard(
    session: UserSession = Depends(get_current_session),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Role-specific summary; the `role` field says which shape was returned"""
    return service.get_dashboard(session)
