from fastapi import APIRouter
from hrms.routers import leave, leave_manager, year_end

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(leave.router, tags=["Leave"])
api_router.include_router(leave_manager.router, tags=["Leave Manager"])
api_router.include_router(year_end.router, tags=["Year End"])
