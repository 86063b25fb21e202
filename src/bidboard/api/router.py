"""Master API router mounted at /api/v1."""

from fastapi import APIRouter

from bidboard.api.routes import approvals, boards, health, moves, proposals

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(boards.router)
api_router.include_router(proposals.router)
api_router.include_router(moves.router)
api_router.include_router(approvals.router)
