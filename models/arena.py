"""
Arena model for the Quarantine Deadlock Simulator.

An arena seats N agents around a ring of N exclusive resources, answers
deadlock probes for that ring and escalates agents to the shared
quarantine arena.
"""

import threading
import numpy as np
from typing import Callable, List, Optional

from algorithms.detection import probe_ring, held_count
from analysis.events import EventLog, EventType, SimulationEvent
from models.quarantine import QuarantineArena
from models.resource import ExclusiveResource
from utils.logger import SimulatorLogger


class Arena:
    """
    Primary arena: a ring of exclusive resources.

    Slot i's left resource is resources[i] and its right resource is
    resources[(i + 1) % N]; that circularity is what makes a global deadlock
    possible.

    Attributes:
        arena_id: Arena identifier
        resources: Ring of N resources, fixed at construction
        quarantine: Shared escalation target
        logger: Logging sink
        event_log: Structured event record
    """

    def __init__(
        self,
        arena_id: int,
        size: int,
        quarantine: QuarantineArena,
        logger: Optional[SimulatorLogger] = None,
        event_log: Optional[EventLog] = None,
        resource_factory: Callable[[int, int], ExclusiveResource] = ExclusiveResource
    ):
        """
        Build the ring.

        Args:
            arena_id: Arena identifier
            size: Number of slots N (must be at least 2)
            quarantine: Shared quarantine arena
            logger: Logging sink (silent logger if omitted)
            event_log: Event record (fresh log if omitted)
            resource_factory: Called as factory(slot, arena_id) per slot
        """
        if size < 2:
            raise ValueError(f"Arena {arena_id}: ring needs at least 2 slots, got {size}")

        self.arena_id = arena_id
        self.quarantine = quarantine
        self.logger = logger or SimulatorLogger(echo=False)
        self.event_log = event_log if event_log is not None else EventLog()
        self.resources: List[ExclusiveResource] = [
            resource_factory(slot, arena_id) for slot in range(size)
        ]
        # Probes share one holder identity, so they run one at a time per arena
        self._probe_lock = threading.Lock()
        self._probe_holder = f"arena-{arena_id}-probe"

    @property
    def size(self) -> int:
        """Number of slots in the ring."""
        return len(self.resources)

    @property
    def quarantine_saturated(self) -> bool:
        """Saturation flag of the escalation target."""
        return self.quarantine.saturated

    def left_resource(self, slot: int) -> ExclusiveResource:
        """Left resource of the agent seated at slot."""
        self._check_slot(slot)
        return self.resources[slot]

    def right_resource(self, slot: int) -> ExclusiveResource:
        """Right resource of the agent seated at slot (wraps around the ring)."""
        self._check_slot(slot)
        return self.resources[(slot + 1) % self.size]

    def detect_deadlock(self) -> bool:
        """
        Run the ring probe heuristic.

        Computed on demand, never cached. Safe to call while agents acquire and
        release; see algorithms.detection.probe_ring for the exact semantics.

        Returns:
            True if every resource of the ring was held when probed
        """
        with self._probe_lock:
            deadlocked, held = probe_ring(self.resources, self._probe_holder)

        self.logger.log(
            f"Arena {self.arena_id} probe: {held_count(held)}/{self.size} resources held",
            "debug"
        )
        return deadlocked

    def snapshot(self) -> np.ndarray:
        """Boolean vector of slots currently held, read without probing."""
        return np.array([resource.locked() for resource in self.resources], dtype=bool)

    def escalate(self, agent) -> None:
        """
        Move an agent from this arena to the quarantine arena.

        Append, last-arrival bookkeeping and the saturation flip happen inside
        the quarantine's critical section, so escalations racing in from
        different arenas cannot lose an update or skip saturation.

        Args:
            agent: Agent being escalated
        """
        count, just_saturated = self.quarantine.admit(agent)
        agent.move_to(self.quarantine)

        self.logger.log_escalation(agent.agent_id, self.arena_id, count, self.quarantine.quota)
        self.event_log.add(SimulationEvent(
            timestamp=self.logger.elapsed(),
            event_type=EventType.ESCALATION,
            agent_id=agent.agent_id,
            arena_id=self.arena_id,
            message=f"quarantine occupancy {count}/{self.quarantine.quota}"
        ))

        if just_saturated:
            self.logger.log_saturation(agent.agent_id, count)
            self.event_log.add(SimulationEvent(
                timestamp=self.logger.elapsed(),
                event_type=EventType.SATURATION,
                agent_id=agent.agent_id,
                arena_id=self.quarantine.arena_id,
                message=f"quota {self.quarantine.quota} reached"
            ))

    def _check_slot(self, slot: int) -> None:
        if slot < 0 or slot >= self.size:
            raise IndexError(f"Arena {self.arena_id}: invalid slot {slot} (ring size {self.size})")

    def __repr__(self) -> str:
        """String representation for debugging."""
        held = "".join("X" if h else "." for h in self.snapshot())
        return f"Arena(id={self.arena_id}, size={self.size}, held=[{held}])"
