"""Versioned local view of a board's proposals.

Holds the last server-confirmed version of every proposal plus at most one
optimistic change per proposal. Server records are merged by id and version:
an incoming record older than what is already known is ignored.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from bidboard.errors.exceptions import ConflictError, NotFoundError
from bidboard.models.proposal import Proposal
from bidboard.services.id_generator import generate_id


@dataclass
class _PendingChange:
    token: str
    proposal_id: str
    previous: Proposal


class BoardState:
    def __init__(self, proposals: Iterable[Proposal] = ()):
        self._records: dict[str, Proposal] = {}
        self._versions: dict[str, int] = {}
        self._pending: dict[str, _PendingChange] = {}
        self.reconcile(proposals)

    def get(self, proposal_id: str) -> Proposal | None:
        return self._records.get(proposal_id)

    def require(self, proposal_id: str) -> Proposal:
        proposal = self._records.get(proposal_id)
        if proposal is None:
            raise NotFoundError("Proposal", proposal_id)
        return proposal

    def proposals(self) -> list[Proposal]:
        return list(self._records.values())

    def confirmed_version(self, proposal_id: str) -> int | None:
        return self._versions.get(proposal_id)

    def has_pending(self, proposal_id: str) -> bool:
        return any(p.proposal_id == proposal_id for p in self._pending.values())

    def apply_optimistic(self, proposal_id: str, fields: dict) -> str:
        """Apply ``fields`` locally before the store confirms. Returns a token."""
        if self.has_pending(proposal_id):
            raise ConflictError(f"Proposal '{proposal_id}' already has an unconfirmed change")
        previous = self.require(proposal_id)
        token = generate_id("opt_")
        self._pending[token] = _PendingChange(token, proposal_id, previous)
        self._records[proposal_id] = previous.model_copy(update=fields)
        return token

    def confirm(self, token: str, record: Proposal) -> None:
        """Replace the optimistic value with the record the store returned."""
        change = self._pending.pop(token, None)
        if change is None:
            raise KeyError(token)
        self._records[record.proposal_id] = record
        self._versions[record.proposal_id] = record.version

    def rollback(self, token: str) -> Proposal:
        """Drop an optimistic change and restore the last confirmed value."""
        change = self._pending.pop(token, None)
        if change is None:
            raise KeyError(token)
        self._records[change.proposal_id] = change.previous
        return change.previous

    def reconcile(self, records: Iterable[Proposal]) -> list[str]:
        """Merge server records; returns the ids whose local value changed."""
        replaced = []
        for record in records:
            known = self._versions.get(record.proposal_id)
            if known is not None and record.version < known:
                continue
            if known is not None and record.version == known and self.has_pending(record.proposal_id):
                # Same server version: the optimistic change is still in flight
                continue
            for token, change in list(self._pending.items()):
                if change.proposal_id == record.proposal_id:
                    del self._pending[token]
            self._records[record.proposal_id] = record
            self._versions[record.proposal_id] = record.version
            replaced.append(record.proposal_id)
        return replaced

    def invalidate(self, proposal_id: str) -> None:
        """Forget a proposal so the next reconcile accepts any server version."""
        self._records.pop(proposal_id, None)
        self._versions.pop(proposal_id, None)
        for token, change in list(self._pending.items()):
            if change.proposal_id == proposal_id:
                del self._pending[token]
