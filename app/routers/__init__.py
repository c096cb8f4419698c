"""
SGI Compliance Tracker - Routers Package

FastAPI route handlers.

Routers:
- requirements: Requirement CRUD, yearly plans and calendar cells
- evidence: Evidence upload/review and the review queue
- dashboard: Compliance dashboard and per-area compliance
- registries: Areas, plants, standards, users, settings, seed
- realtime: WebSocket collection snapshots
"""

from app.routers import (
    requirements,
    evidence,
    dashboard,
    registries,
    realtime,
)

__all__ = [
    "requirements",
    "evidence",
    "dashboard",
    "registries",
    "realtime",
]
