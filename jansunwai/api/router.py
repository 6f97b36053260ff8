"""Main API router combining all v1 route modules.

Aggregates the complaint, department, fraud review and health routers
under the ``/api/v1`` prefix.
"""

from __future__ import annotations

from fastapi import APIRouter

from jansunwai.api.v1 import complaints, departments, fraud, health

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(complaints.router)
api_router.include_router(departments.router)
api_router.include_router(fraud.router)
api_router.include_router(health.router)
