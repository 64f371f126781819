# app/routes/health_routes.py
from fastapi import APIRouter

from app.config import HEALTH_ROUTE
from app.models import HealthResponse

# Create an APIRouter instance for health check routes
router = APIRouter()


@router.get(HEALTH_ROUTE, response_model=HealthResponse)
async def health_check():
    """Reports that the API is up. Goes through the same admission pipeline as every route."""
    return HealthResponse(code=200, message="API is healthy.", data={})
