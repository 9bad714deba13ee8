"""
API Router v1

Combines all route modules.
"""

from fastapi import APIRouter

from tabulator.api.v1.routes import scores, rankings

api_router = APIRouter()

api_router.include_router(scores.router, tags=["Scores"])
api_router.include_router(rankings.router, tags=["Rankings"])
