"""Lazy reveal of large columns.

The paginator only ever exposes a prefix of a column's already-sorted
membership. It never reorders or filters; each column keeps its own cursor.
"""

from collections.abc import Callable, Sequence

from bidboard.config import settings
from bidboard.models.proposal import Proposal

MembershipSource = Callable[[str], Sequence[Proposal]]


class LazyRevealPaginator:
    def __init__(
        self,
        membership: MembershipSource,
        initial_batch: int | None = None,
        increment: int | None = None,
    ):
        """``membership(column_id)`` returns the column's sorted proposals.

        It is called on every read so the paginator always sees the latest
        membership rather than a snapshot.
        """
        self._membership = membership
        self.initial_batch = initial_batch if initial_batch is not None else settings.reveal_initial_batch
        self.increment = increment if increment is not None else settings.reveal_batch_increment
        if self.initial_batch < 1 or self.increment < 1:
            raise ValueError("reveal batch sizes must be positive")
        self._cursors: dict[str, int] = {}

    def cursor(self, column_id: str) -> int:
        """Number of proposals currently revealed, bounded by membership."""
        total = len(self._membership(column_id))
        return min(self._cursors.get(column_id, self.initial_batch), total)

    def set_cursor(self, column_id: str, loaded: int) -> None:
        """Restore a cursor, e.g. from a client that already revealed ``loaded``."""
        self._cursors[column_id] = max(loaded, self.initial_batch)

    def get_visible(self, column_id: str) -> list[Proposal]:
        members = self._membership(column_id)
        return list(members[: self.cursor(column_id)])

    def has_more(self, column_id: str) -> bool:
        return self.cursor(column_id) < len(self._membership(column_id))

    def load_more(self, column_id: str) -> None:
        total = len(self._membership(column_id))
        current = self._cursors.get(column_id, self.initial_batch)
        self._cursors[column_id] = min(current + self.increment, max(total, self.initial_batch))

    def load_all(self, column_id: str) -> None:
        self._cursors[column_id] = max(len(self._membership(column_id)), self.initial_batch)

    def refresh(self, column_id: str | None = None) -> None:
        """Revalidate cursors after membership changed.

        A cursor never shrinks below the initial batch and never points past
        the end of the column.
        """
        column_ids = [column_id] if column_id is not None else list(self._cursors)
        for cid in column_ids:
            if cid not in self._cursors:
                continue
            total = len(self._membership(cid))
            self._cursors[cid] = min(self._cursors[cid], max(total, self.initial_batch))

    def reset(self, column_id: str | None = None) -> None:
        if column_id is None:
            self._cursors.clear()
        else:
            self._cursors.pop(column_id, None)
