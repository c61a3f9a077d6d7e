"""
Quarantine Arena Tests

Tests quota filling, saturation exactness and monotonicity, double
escalation and concurrent escalation races.
"""

import sys
import threading
import time
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

from models.quarantine import QuarantineArena
from doubles import StubAgent


def test_quarantine_fill_scenario():
    """Quota 5: saturated only after the 5th distinct agent."""
    print("\n" + "="*60)
    print("TEST: Quarantine fill (K=5)")
    print("="*60)

    quarantine = QuarantineArena(quota=5)
    ids = [11, 3, 24, 8, 17]

    for count, agent_id in enumerate(ids, start=1):
        occupancy, just_saturated = quarantine.admit(StubAgent(agent_id))
        print(f"  admit A{agent_id}: count={len(quarantine)} saturated={quarantine.saturated}")
        assert len(quarantine) == count
        assert occupancy == count, "admit reports occupancy after the append"
        assert quarantine.last_escalated_id == agent_id
        if count < 5:
            assert not quarantine.saturated, f"Must not saturate at {count} < 5"
            assert not just_saturated
        else:
            assert quarantine.saturated, "Must saturate at the 5th admission"
            assert just_saturated

    assert quarantine.escalated_ids == tuple(ids), "Insertion order preserved"
    assert quarantine.last_escalated_id == 17
    assert quarantine.saturated_by == 17
    print("  ✓ Saturation exact at K")


def test_saturation_is_monotonic():
    quarantine = QuarantineArena(quota=2)
    quarantine.admit(StubAgent(1))
    quarantine.admit(StubAgent(2))
    assert quarantine.saturated

    # Agents still in flight may arrive after saturation
    assert quarantine.admit(StubAgent(3)) == (3, False), "Only the first crossing reports saturation"
    assert quarantine.saturated
    assert len(quarantine) == 3
    assert quarantine.last_escalated_id == 3
    assert quarantine.saturated_by == 2, "Late arrivals do not change who saturated it"


def test_double_escalation_rejected():
    quarantine = QuarantineArena(quota=3)
    quarantine.admit(StubAgent(4))

    with pytest.raises(ValueError):
        quarantine.admit(StubAgent(4))

    assert len(quarantine) == 1
    assert quarantine.escalated_ids == (4,)


def test_invalid_quota():
    with pytest.raises(ValueError):
        QuarantineArena(quota=0)


def test_concurrent_escalation_race():
    """Escalations released from a barrier are neither lost nor duplicated."""
    agents = 40
    quarantine = QuarantineArena(quota=25)
    barrier = threading.Barrier(agents)
    crossings = []
    occupancies = []
    results_lock = threading.Lock()

    def escalate(agent_id: int) -> None:
        barrier.wait()
        occupancy, just_saturated = quarantine.admit(StubAgent(agent_id))
        with results_lock:
            occupancies.append(occupancy)
            if just_saturated:
                crossings.append((agent_id, occupancy))

    threads = [threading.Thread(target=escalate, args=(i,)) for i in range(agents)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)

    ids = quarantine.escalated_ids
    print(f"\n  Admitted {len(ids)} agents, saturation crossed by {crossings}")
    assert len(ids) == agents, "No lost entries"
    assert sorted(ids) == list(range(agents)), "No duplicated entries"
    assert sorted(occupancies) == list(range(1, agents + 1)), "Each admission sees its own occupancy"
    assert len(crossings) == 1, "Exactly one admission flips saturation"
    assert crossings[0][1] == 25, "Saturation crossed exactly at the quota"
    assert ids[24] == crossings[0][0]
    assert quarantine.saturated
    assert quarantine.last_escalated_id == ids[-1]


def test_wait_saturated_wakes_on_flip():
    quarantine = QuarantineArena(quota=1)

    def late_admit() -> None:
        time.sleep(0.1)
        quarantine.admit(StubAgent(9))

    t = threading.Thread(target=late_admit)
    started = time.monotonic()
    t.start()
    assert quarantine.wait_saturated(timeout=5.0)
    waited = time.monotonic() - started
    t.join()

    assert waited < 4.0, f"Waiter should wake on saturation, waited {waited:.2f}s"


def test_wait_saturated_times_out():
    quarantine = QuarantineArena(quota=1)
    assert not quarantine.wait_saturated(timeout=0.05)
    assert not quarantine.saturated
