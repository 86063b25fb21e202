"""Process-wide guard against interleaved moves of the same proposal."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from bidboard.errors.exceptions import ConflictError


class MoveGuard:
    """Tracks proposals with a move in flight.

    Check and claim happen with no await in between, so on one event loop two
    requests can never both hold the same proposal.
    """

    def __init__(self) -> None:
        self._in_flight: set[str] = set()

    def is_in_flight(self, proposal_id: str) -> bool:
        return proposal_id in self._in_flight

    @asynccontextmanager
    async def claim(self, proposal_id: str) -> AsyncIterator[None]:
        if proposal_id in self._in_flight:
            raise ConflictError(
                f"A move for proposal '{proposal_id}' is already in progress",
                details={"proposal_id": proposal_id},
            )
        self._in_flight.add(proposal_id)
        try:
            yield
        finally:
            self._in_flight.discard(proposal_id)
