"""
Per-card locks that serialize balance changes inside one process.

A transfer reads two balances, checks them, and writes them back. If two
transfers debit the same card concurrently, both can pass the funds check
against the same stale balance and overdraw the card. Holding a lock per
card for the whole read-check-write-commit cycle closes that gap.

Rules:
  - Locks are per card id, so transfers over disjoint cards never wait on
    each other.
  - Multiple ids are always acquired in sorted order. Two transfers A->B
    and B->A both take min(A, B) first, so they can't deadlock.
  - Entries are dropped once nobody holds or waits for them.

This covers a single worker process. Across processes the services also
read rows with SELECT ... FOR UPDATE in the same sorted order, and the
non-negative balance CHECK constraint rejects anything that slips past.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager


class CardLockRegistry:
    """Hands out one asyncio.Lock per card id."""

    def __init__(self):
        self._locks: dict[uuid.UUID, asyncio.Lock] = {}
        self._users: dict[uuid.UUID, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, *card_ids: uuid.UUID):
        """
        Hold the locks for every given card id until the block exits.

        Duplicate ids are collapsed, so hold(a, a) takes one lock.
        """
        ordered = sorted(set(card_ids))
        for card_id in ordered:
            self._users[card_id] = self._users.get(card_id, 0) + 1
            self._locks.setdefault(card_id, asyncio.Lock())

        acquired: list[asyncio.Lock] = []
        try:
            for card_id in ordered:
                lock = self._locks[card_id]
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for card_id in ordered:
                self._users[card_id] -= 1
                if self._users[card_id] == 0:
                    del self._users[card_id]
                    del self._locks[card_id]


# Shared by every request handled by this process
card_locks = CardLockRegistry()
