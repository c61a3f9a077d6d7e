"""
Deadlock Detection Heuristic for the Quarantine Deadlock Simulator.

Implements the point-in-time ring probe: a ring is considered deadlocked
when every one of its resources is held at the moment it is probed.
"""

import numpy as np
from typing import Hashable, Sequence, Tuple


def probe_ring(resources: Sequence, holder: Hashable) -> Tuple[bool, np.ndarray]:
    """
    Probe every resource of a ring with a non-blocking acquire.

    Algorithm:
    1. Initialize Held = [False] * N
    2. For each resource r: try_acquire(r)
       - success: release r immediately (r was free)
       - failure: Held[r] = True
    3. Deadlock iff all(Held)

    This is a heuristic, not a wait-for-graph cycle check. A resource that is
    released and re-taken between two probes shows up as free, so a real
    deadlock may be missed on one pass (false negative). Because each probe
    goes through the same lock agents use, a positive answer means every
    resource really was held when it was probed.

    The probe never keeps a resource it did not already own. Callers must
    serialize probes that share the same holder identity.

    Args:
        resources: Ring of objects exposing try_acquire(holder)/release(holder)
        holder: Identity the probe acquires under

    Returns:
        Tuple of (deadlock_suspected, boolean held vector [N])
    """
    held = np.zeros(len(resources), dtype=bool)

    for i, resource in enumerate(resources):
        if resource.try_acquire(holder):
            resource.release(holder)
        else:
            held[i] = True

    deadlock_suspected = bool(len(resources) > 0 and np.all(held))
    return deadlock_suspected, held


def held_count(held: np.ndarray) -> int:
    """Number of resources reported held by a probe."""
    return int(np.count_nonzero(held))
