"""
Agent Protocol Tests

Tests the per-cycle protocol (think, left, hold, right probe, eat,
release), escalation, termination on saturation, interruption and
resource misuse.
"""

import random
import sys
import threading
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

from analysis.events import EventType
from models.agent import Agent, AgentState, AgentTiming
from models.arena import Arena
from models.quarantine import QuarantineArena
from models.resource import ExclusiveResource
from doubles import (
    AlwaysDeadlockedArena,
    AlwaysFreeResource,
    GatedSleeper,
    StubAgent,
    scripted_sleeper,
)


ZERO_TIMING = AgentTiming(think_max=0.0, eat_max=0.0, hold_delay=0.0)


def seat(arena: Arena, slot: int, agent_id: int = None, **kwargs) -> Agent:
    """Create the agent for one slot of an arena."""
    kwargs.setdefault("timing", ZERO_TIMING)
    kwargs.setdefault("event_log", arena.event_log)
    return Agent(
        agent_id=slot if agent_id is None else agent_id,
        slot=slot,
        left=arena.left_resource(slot),
        right=arena.right_resource(slot),
        home=arena,
        **kwargs
    )


def test_cycle_with_free_right_resource_eats():
    arena = Arena(0, 3, QuarantineArena(quota=3))
    agent = seat(arena, 0)

    state = agent.run_cycle()

    assert state == AgentState.IDLE
    assert agent.cycles == 1 and agent.meals == 1 and agent.starved_cycles == 0
    assert not arena.snapshot().any(), "Both resources released after the cycle"

    types = [e.event_type for e in arena.event_log.get_events_by_agent(0)]
    assert types == [
        EventType.THINKING,
        EventType.ACQUIRE_LEFT,
        EventType.ACQUIRE_RIGHT,
        EventType.EATING,
        EventType.RELEASE_RIGHT,
        EventType.RELEASE_LEFT,
    ]
    print("  ✓ Full cycle emits every transition in order")


def test_busy_right_resource_skips_meal():
    arena = Arena(0, 3, QuarantineArena(quota=3))
    agent = seat(arena, 0)
    arena.right_resource(0).acquire("neighbour")

    state = agent.run_cycle()

    assert state == AgentState.IDLE
    assert agent.meals == 0 and agent.starved_cycles == 1
    assert not arena.left_resource(0).locked(), "Left is always released"
    assert arena.right_resource(0).holder == "neighbour", "Neighbour keeps its resource"
    assert len(arena.event_log.get_events_by_type(EventType.RIGHT_UNAVAILABLE)) == 1
    assert len(arena.quarantine) == 0

    arena.right_resource(0).release("neighbour")


def test_escalates_when_arena_reports_deadlock():
    quarantine = QuarantineArena(quota=5)
    arena = AlwaysDeadlockedArena(0, 3, quarantine)
    agent = seat(arena, 1, agent_id=7)

    final_state = agent.run()

    assert final_state == AgentState.ESCALATED
    assert agent.cycles == 1, "Escalated agents stop after the detecting cycle"
    assert agent.escalated
    assert agent.home is quarantine
    assert quarantine.escalated_ids == (7,)
    assert not arena.snapshot().any(), "Escalated agent holds nothing"
    assert len(arena.event_log.get_events_by_type(EventType.DEADLOCK)) == 1


def test_move_to_happens_only_once():
    arena = Arena(0, 3, QuarantineArena(quota=5))
    agent = seat(arena, 0)
    agent.move_to(arena.quarantine)

    with pytest.raises(ValueError):
        agent.move_to(arena.quarantine)


def test_stops_when_quarantine_saturated():
    quarantine = QuarantineArena(quota=1)
    quarantine.admit(StubAgent(99))
    arena = Arena(0, 3, quarantine)
    agent = seat(arena, 0)

    assert agent.run() == AgentState.STOPPED
    assert agent.cycles == 0
    assert len(arena.event_log.get_events_by_type(EventType.STOPPED)) == 1


def test_stop_event_interrupts_thinking():
    arena = Arena(0, 3, QuarantineArena(quota=3))
    agent = seat(arena, 0, timing=AgentTiming(think_max=5.0, eat_max=0.0, hold_delay=0.0))
    agent.stop_event.set()

    assert agent.run() == AgentState.INTERRUPTED
    assert agent.cycles == 0
    assert len(arena.event_log.get_events_by_type(EventType.INTERRUPTED)) == 1


@pytest.mark.parametrize("phase", ["hold", "eat"])
def test_interruption_while_holding_releases_resources(phase):
    arena = Arena(0, 3, QuarantineArena(quota=3))
    agent = seat(arena, 0, sleeper=scripted_sleeper(interrupt_phase=phase))

    assert agent.run() == AgentState.INTERRUPTED
    assert agent.cycles == 0, "Interrupted cycle is abandoned"
    assert not arena.snapshot().any(), f"Resources leaked after interruption in {phase}"


def test_resource_misuse_faults_agent():
    """An agent wired with the same resource on both sides double-acquires."""
    resource = ExclusiveResource(slot=0)
    arena = Arena(0, 2, QuarantineArena(quota=2))
    agent = Agent(
        agent_id=0,
        slot=0,
        left=resource,
        right=resource,
        home=arena,
        timing=ZERO_TIMING,
        event_log=arena.event_log
    )

    assert agent.run() == AgentState.FAULTED
    assert not resource.locked(), "Faulted agent released its left resource"
    faults = arena.event_log.get_events_by_type(EventType.FAULT)
    assert len(faults) == 1 and "misuse" in faults[0].message


def test_no_deadlock_scenario_over_fixed_cycles():
    """Probes that always report free never escalate anybody."""
    quarantine = QuarantineArena(quota=1)
    arena = Arena(0, 5, quarantine, resource_factory=AlwaysFreeResource)
    agents = [seat(arena, slot) for slot in range(5)]

    for _ in range(20):
        for agent in agents:
            assert agent.run_cycle() == AgentState.IDLE

    assert len(quarantine) == 0
    assert not quarantine.saturated
    assert all(a.cycles == 20 and a.meals == 20 for a in agents)
    assert not arena.event_log.get_events_by_type(EventType.ESCALATION)


def test_forced_deadlock_scenario():
    """
    N=5, zero think/eat, hold phase parked: every agent holds its left resource
    at once and the probe reports the deadlock on its first pass.
    """
    print("\n" + "="*60)
    print("TEST: Forced deadlock (N=5)")
    print("="*60)

    quarantine = QuarantineArena(quota=5)
    arena = Arena(0, 5, quarantine)
    sleeper = GatedSleeper(parties=5)
    agents = [
        seat(arena, slot, sleeper=sleeper,
             timing=AgentTiming(think_max=0.0, eat_max=0.0, hold_delay=10.0))
        for slot in range(5)
    ]
    threads = [threading.Thread(target=a.run, daemon=True) for a in agents]
    for t in threads:
        t.start()

    try:
        sleeper.wait_all_holding()
        print(f"  Ring state: {arena}")
        assert arena.snapshot().all(), "Every agent holds its left resource"
        assert arena.detect_deadlock(), "Probe must see the full hold-and-wait ring"
        assert all(a.state == AgentState.HOLDING_LEFT for a in agents)
    finally:
        sleeper.release(stop=True)
        for t in threads:
            t.join(5)

    assert all(a.state == AgentState.INTERRUPTED for a in agents)
    assert not arena.snapshot().any()
    print("  ✓ Deadlock detected within one probe")


def test_seeded_agents_draw_the_same_durations():
    draws = []
    for _ in range(2):
        durations = []

        def recorder(phase: str, seconds: float) -> None:
            durations.append((phase, round(seconds, 9)))

        arena = Arena(0, 2, QuarantineArena(quota=2))
        agent = seat(arena, 0, rng=random.Random(42), sleeper=recorder,
                     timing=AgentTiming(think_max=3.0, eat_max=2.0, hold_delay=1.5))
        for _ in range(3):
            agent.run_cycle()
        draws.append(durations)

    assert draws[0] == draws[1]
    assert all(0 <= s < 3.0 for p, s in draws[0] if p == "think")
    assert all(s == 1.5 for p, s in draws[0] if p == "hold")
