"""
Resource model for the Quarantine Deadlock Simulator.

Represents one exclusive resource seated between two adjacent agents
of an arena ring.
"""

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator, Optional


class ResourceMisuseError(RuntimeError):
    """Raised when a caller breaks the acquire/release pairing of a resource."""
    pass


class ExclusiveResource:
    """
    Mutual-exclusion resource with blocking and non-blocking acquisition.

    Attributes:
        slot: Position of the resource in its arena ring
        arena_id: Arena owning the resource

    Invariant:
        At most one holder at any instant. The holder is recorded only while
        the underlying lock is held, so probes and real acquisitions share the
        same exclusion primitive.
    """

    def __init__(self, slot: int, arena_id: int = 0):
        self.slot = slot
        self.arena_id = arena_id
        self._lock = threading.Lock()
        self._holder: Optional[Hashable] = None

    @property
    def holder(self) -> Optional[Hashable]:
        """Current holder, or None when free."""
        return self._holder

    def locked(self) -> bool:
        """True while some holder owns the resource."""
        return self._lock.locked()

    def acquire(self, holder: Hashable) -> None:
        """
        Block until the resource is held by the caller.

        No timeout: this is the unbounded wait that lets a ring deadlock.

        Args:
            holder: Identity of the acquiring caller

        Raises:
            ResourceMisuseError: If the caller already holds the resource
        """
        self._check_not_holding(holder)
        self._lock.acquire()
        self._holder = holder

    def try_acquire(self, holder: Hashable) -> bool:
        """
        Attempt to take the resource without blocking.

        Args:
            holder: Identity of the acquiring caller

        Returns:
            True if the caller now holds the resource, False if it is busy

        Raises:
            ResourceMisuseError: If the caller already holds the resource
        """
        self._check_not_holding(holder)
        if not self._lock.acquire(blocking=False):
            return False
        self._holder = holder
        return True

    def release(self, holder: Hashable) -> None:
        """
        Release the resource.

        Args:
            holder: Identity of the releasing caller

        Raises:
            ResourceMisuseError: If the caller does not hold the resource
        """
        if holder is None or self._holder != holder:
            raise ResourceMisuseError(
                f"R{self.slot} (arena {self.arena_id}): release by {holder!r} "
                f"but held by {self._holder!r}"
            )
        self._holder = None
        self._lock.release()

    @contextmanager
    def held_by(self, holder: Hashable) -> Iterator["ExclusiveResource"]:
        """Blocking acquisition scoped to a with-block."""
        self.acquire(holder)
        try:
            yield self
        finally:
            self.release(holder)

    def _check_not_holding(self, holder: Hashable) -> None:
        if holder is None:
            raise ResourceMisuseError(f"R{self.slot} (arena {self.arena_id}): holder must not be None")
        # Only the holder itself can set _holder to its own identity
        if self._holder == holder:
            raise ResourceMisuseError(
                f"R{self.slot} (arena {self.arena_id}): {holder!r} acquires a resource it already holds"
            )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"ExclusiveResource(arena={self.arena_id}, slot={self.slot}, holder={self._holder!r})"
