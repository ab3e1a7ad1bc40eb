"""
Music Journal Backend - Shared Response Schemas
================================================

What:  Error, health and ping response models used across routers.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Every error body in the API.

    Example:
        {"error": "Username already taken"}

    The request id for support lookups travels in the X-Request-ID header.
    """
    error: str = Field(description="Human-readable, single-line error message")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


class PingResponse(BaseModel):
    message: str = "pong"
    time: datetime
