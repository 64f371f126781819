# app/models.py
from pydantic import BaseModel


# Pydantic model for the health check response
class HealthResponse(BaseModel):
    code: int
    message: str
    data: dict = {}


# Pydantic model for API error responses
class ErrorResponse(BaseModel):
    status: int
    message: str
    data: dict = {}
