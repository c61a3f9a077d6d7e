"""
Agent model for the Quarantine Deadlock Simulator.

An agent is plain data plus a run loop; the coordinator drives each one on
its own thread.
"""

import random
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from analysis.events import EventLog, EventType, SimulationEvent
from models.resource import ExclusiveResource, ResourceMisuseError
from utils.logger import SimulatorLogger


class AgentState(Enum):
    """Agent states in the simulation."""
    THINKING = "THINKING"
    HOLDING_LEFT = "HOLDING_LEFT"
    HOLDING_BOTH = "HOLDING_BOTH"
    RELEASING_LEFT = "RELEASING_LEFT"
    IDLE = "IDLE"
    ESCALATED = "ESCALATED"
    STOPPED = "STOPPED"
    INTERRUPTED = "INTERRUPTED"
    FAULTED = "FAULTED"


TERMINAL_STATES = frozenset({
    AgentState.ESCALATED,
    AgentState.STOPPED,
    AgentState.INTERRUPTED,
    AgentState.FAULTED,
})


class AgentInterrupted(Exception):
    """Raised at a suspension point when the agent has been asked to stop."""
    pass


@dataclass(frozen=True)
class AgentTiming:
    """
    Timing parameters shared by every agent, in seconds.

    Attributes:
        think_max: Upper bound (exclusive) of the random thinking time
        eat_max: Upper bound (exclusive) of the random eating time
        hold_delay: Fixed pause between taking the left and probing the right
    """
    think_max: float
    eat_max: float
    hold_delay: float


# Called as sleeper(phase, seconds) with phase in {"think", "hold", "eat"}
Sleeper = Callable[[str, float], None]


@dataclass(eq=False)
class Agent:
    """
    One simulated agent contending for its left and right resources.

    Attributes:
        agent_id: Unique identifier (immutable)
        slot: Seat index in the home arena ring
        left: Left resource (fixed at creation)
        right: Right resource (fixed at creation)
        home: Current arena; changes exactly once, on escalation
        timing: Think/eat/hold parameters
        logger: Logging sink
        event_log: Structured event record
        stop_event: Set to interrupt the agent at its next sleep
        rng: Private random source for think/eat draws
        sleeper: Replaces the default interruptible sleep (test doubles)
        state: Current state
        cycles: Completed cycles
        meals: Cycles in which both resources were obtained
        starved_cycles: Cycles in which the right resource was busy
    """
    agent_id: int
    slot: int
    left: ExclusiveResource
    right: ExclusiveResource
    home: object
    timing: AgentTiming
    logger: SimulatorLogger = field(default_factory=lambda: SimulatorLogger(echo=False))
    event_log: EventLog = field(default_factory=EventLog)
    stop_event: threading.Event = field(default_factory=threading.Event)
    rng: random.Random = field(default_factory=random.Random)
    sleeper: Optional[Sleeper] = None
    state: AgentState = AgentState.IDLE
    cycles: int = 0
    meals: int = 0
    starved_cycles: int = 0

    def __post_init__(self):
        self.home_arena_id = getattr(self.home, "arena_id", None)
        self._escalated = False

    @property
    def escalated(self) -> bool:
        """True once the agent has moved to the quarantine arena."""
        return self._escalated

    def is_terminated(self) -> bool:
        """True once the agent has left its cycle loop for good."""
        return self.state in TERMINAL_STATES

    def move_to(self, arena) -> None:
        """
        Re-home the agent after escalation.

        Raises:
            ValueError: If the agent has already been moved once
        """
        if self._escalated:
            raise ValueError(f"Agent {self.agent_id} has already been escalated")
        self._escalated = True
        self.home = arena
        self.state = AgentState.ESCALATED

    def run(self) -> AgentState:
        """
        Cycle until escalated, stopped by saturation, interrupted or faulted.

        Interruption and resource misuse end only this agent; neither is
        propagated to the coordinator.

        Returns:
            The terminal state the agent ended in
        """
        try:
            while not self.is_terminated():
                if self.home.quarantine_saturated:
                    self.state = AgentState.STOPPED
                    self._emit(EventType.STOPPED, "stops: quarantine arena is saturated")
                    break
                self.run_cycle()
        except AgentInterrupted:
            self.state = AgentState.INTERRUPTED
            self._emit(EventType.INTERRUPTED, "was interrupted, abandoning its cycle", level="warning")
        except ResourceMisuseError as e:
            self.state = AgentState.FAULTED
            self._emit(EventType.FAULT, f"halted on resource misuse: {e}", level="error")
        return self.state

    def run_cycle(self) -> AgentState:
        """
        Run one think / acquire / eat / release cycle and the escalation check.

        Returns:
            IDLE, or ESCALATED if the home arena reported a deadlock
        """
        self._think()

        # Blocking, unbounded: every agent of a ring can end up here at once
        with self.left.held_by(self.agent_id):
            self.state = AgentState.HOLDING_LEFT
            self._emit(EventType.ACQUIRE_LEFT, "picked up left resource", slot=self.left.slot)

            self._sleep("hold", self.timing.hold_delay)

            if self.right.try_acquire(self.agent_id):
                try:
                    self.state = AgentState.HOLDING_BOTH
                    self._emit(EventType.ACQUIRE_RIGHT, "picked up right resource", slot=self.right.slot)
                    self._eat()
                    self.meals += 1
                finally:
                    self.right.release(self.agent_id)
                    self._emit(EventType.RELEASE_RIGHT, "put down right resource", slot=self.right.slot)
            else:
                self.starved_cycles += 1
                self.state = AgentState.RELEASING_LEFT
                self._emit(EventType.RIGHT_UNAVAILABLE, "found right resource busy, skips eating",
                           slot=self.right.slot)

        self.state = AgentState.IDLE
        self._emit(EventType.RELEASE_LEFT, "put down left resource", slot=self.left.slot)
        self.cycles += 1

        arena = self.home
        if arena.detect_deadlock():
            self.logger.log_deadlock(arena.arena_id, self.agent_id)
            self._record(EventType.DEADLOCK, f"arena {arena.arena_id} fully held")
            arena.escalate(self)

        return self.state

    def _think(self) -> None:
        self.state = AgentState.THINKING
        self._emit(EventType.THINKING, "is thinking")
        self._sleep("think", self.rng.random() * self.timing.think_max)

    def _eat(self) -> None:
        self._emit(EventType.EATING, "is eating")
        self._sleep("eat", self.rng.random() * self.timing.eat_max)

    def _sleep(self, phase: str, seconds: float) -> None:
        if self.sleeper is not None:
            self.sleeper(phase, seconds)
            return

        if seconds > 0:
            interrupted = self.stop_event.wait(seconds)
        else:
            interrupted = self.stop_event.is_set()
        if interrupted:
            raise AgentInterrupted(f"Agent {self.agent_id} interrupted while in {phase}")

    def _emit(self, event_type: EventType, message: str, slot: Optional[int] = None,
              level: str = "info") -> None:
        """Report a transition to the logging sink and the event log."""
        self.logger.log_transition(self.agent_id, message, level)
        self._record(event_type, message, slot)

    def _record(self, event_type: EventType, message: str, slot: Optional[int] = None) -> None:
        self.event_log.add(SimulationEvent(
            timestamp=self.logger.elapsed(),
            event_type=event_type,
            agent_id=self.agent_id,
            arena_id=self.home_arena_id,
            slot=slot,
            message=message
        ))

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Agent(id={self.agent_id}, arena={self.home_arena_id}, slot={self.slot}, "
            f"state={self.state.value}, cycles={self.cycles}, meals={self.meals})"
        )
