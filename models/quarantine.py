"""
Quarantine arena for the Quarantine Deadlock Simulator.

Accumulates agents escalated out of deadlocked arenas and flips to a
terminal saturated state once its quota is reached.
"""

import threading
from typing import List, Optional, Tuple


class QuarantineArena:
    """
    Shared, append-only pool of escalated agents.

    Attributes:
        quota: Number of escalated agents that saturates the arena
        arena_id: Identifier used in log lines

    Invariant:
        The escalated sequence never shrinks and saturated never returns to
        False. Append, quota check and saturation flip happen in one critical
        section shared by every primary arena.
    """

    def __init__(self, quota: int, arena_id: int = -1):
        if quota <= 0:
            raise ValueError(f"Quarantine quota must be positive, got {quota}")
        self.quota = quota
        self.arena_id = arena_id
        self._lock = threading.Lock()
        self._saturated_cond = threading.Condition(self._lock)
        self._agents: List = []
        self._agent_ids = set()
        self._last_agent_id: Optional[int] = None
        self._saturated = False
        self._saturated_by: Optional[int] = None

    @property
    def saturated(self) -> bool:
        """True once the quota has been reached."""
        with self._lock:
            return self._saturated

    @property
    def last_escalated_id(self) -> Optional[int]:
        """Identity of the most recently admitted agent."""
        with self._lock:
            return self._last_agent_id

    @property
    def saturated_by(self) -> Optional[int]:
        """Identity of the agent whose admission reached the quota."""
        with self._lock:
            return self._saturated_by

    @property
    def escalated_ids(self) -> Tuple[int, ...]:
        """Admitted agent ids in insertion order."""
        with self._lock:
            return tuple(agent.agent_id for agent in self._agents)

    def admit(self, agent) -> Tuple[int, bool]:
        """
        Append an escalated agent.

        Args:
            agent: Any object exposing an integer ``agent_id``

        Returns:
            Tuple of (occupancy after this admission, True if this admission
            is the one that saturated the arena)

        Raises:
            ValueError: If the agent has already been admitted
        """
        with self._lock:
            if agent.agent_id in self._agent_ids:
                raise ValueError(f"Agent {agent.agent_id} is already quarantined")

            self._agents.append(agent)
            self._agent_ids.add(agent.agent_id)
            self._last_agent_id = agent.agent_id
            count = len(self._agents)

            if not self._saturated and count >= self.quota:
                self._saturated = True
                self._saturated_by = agent.agent_id
                self._saturated_cond.notify_all()
                return count, True
            return count, False

    def wait_saturated(self, timeout: Optional[float] = None) -> bool:
        """
        Block until saturated or the timeout elapses.

        Args:
            timeout: Seconds to wait, None to wait indefinitely

        Returns:
            The saturated flag when the wait ended
        """
        with self._saturated_cond:
            if not self._saturated:
                self._saturated_cond.wait(timeout)
            return self._saturated

    def __len__(self) -> int:
        with self._lock:
            return len(self._agents)

    def __repr__(self) -> str:
        """String representation for debugging."""
        with self._lock:
            return (
                f"QuarantineArena(count={len(self._agents)}, quota={self.quota}, "
                f"saturated={self._saturated}, last={self._last_agent_id})"
            )
