"""FastAPI dependency injection providers."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request

from bidboard.services.kanban.move_guard import MoveGuard


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


def get_move_guard(request: Request) -> MoveGuard:
    """Process-wide in-flight move guard, created lazily on first use."""
    guard = getattr(request.app.state, "move_guard", None)
    if guard is None:
        guard = MoveGuard()
        request.app.state.move_guard = guard
    return guard


# Type aliases for dependency injection
DBSession = Annotated[object, Depends(get_db)]
TraceId = Annotated[str, Depends(get_trace_id)]
Guard = Annotated[MoveGuard, Depends(get_move_guard)]
