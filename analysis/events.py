"""
Event Model for the Quarantine Deadlock Simulator.

Defines event types for tracking agent transitions.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class EventType(Enum):
    """Types of events in the simulation."""
    THINKING = "thinking"
    ACQUIRE_LEFT = "acquire_left"
    ACQUIRE_RIGHT = "acquire_right"
    RIGHT_UNAVAILABLE = "right_unavailable"
    EATING = "eating"
    RELEASE_RIGHT = "release_right"
    RELEASE_LEFT = "release_left"
    DEADLOCK = "deadlock"
    ESCALATION = "escalation"
    SATURATION = "saturation"
    STOPPED = "stopped"
    INTERRUPTED = "interrupted"
    FAULT = "fault"


@dataclass
class SimulationEvent:
    """
    Represents a single event in the simulation.

    Attributes:
        timestamp: Seconds since the simulation started
        event_type: Type of event
        agent_id: Agent involved in event
        arena_id: Arena the agent was seated at (if applicable)
        slot: Resource slot involved (if applicable)
        message: Human-readable description
    """
    timestamp: float
    event_type: EventType
    agent_id: int
    arena_id: Optional[int] = None
    slot: Optional[int] = None
    message: str = ""

    def __str__(self) -> str:
        """Format event for logging."""
        base = f"[{self.timestamp:8.3f}s] Agent {self.agent_id}"

        if self.event_type in (EventType.ACQUIRE_LEFT, EventType.ACQUIRE_RIGHT):
            side = "left" if self.event_type == EventType.ACQUIRE_LEFT else "right"
            return f"{base} holds {side} resource R{self.slot}"
        elif self.event_type in (EventType.RELEASE_LEFT, EventType.RELEASE_RIGHT):
            side = "left" if self.event_type == EventType.RELEASE_LEFT else "right"
            return f"{base} releases {side} resource R{self.slot}"
        elif self.event_type == EventType.DEADLOCK:
            return f"{base} - DEADLOCK DETECTED (arena {self.arena_id})"
        elif self.event_type == EventType.ESCALATION:
            return f"{base} - ESCALATED ({self.message})"
        else:
            return f"{base} - {self.event_type.value}: {self.message}"


@dataclass
class EventLog:
    """Collection of simulation events, safe to append from many agent threads."""
    events: list = None

    def __post_init__(self):
        if self.events is None:
            self.events = []
        self._lock = threading.Lock()

    def add(self, event: SimulationEvent) -> None:
        """Add an event to the log."""
        with self._lock:
            self.events.append(event)

    def snapshot(self) -> list:
        """Copy of the events recorded so far."""
        with self._lock:
            return list(self.events)

    def get_events_by_type(self, event_type: EventType) -> list:
        """Get all events of a specific type."""
        return [e for e in self.snapshot() if e.event_type == event_type]

    def get_events_by_agent(self, agent_id: int) -> list:
        """Get all events raised by one agent."""
        return [e for e in self.snapshot() if e.agent_id == agent_id]

    def display(self) -> str:
        """Format all events for display."""
        return "\n".join(str(event) for event in self.snapshot())
