"""
Metrics Tracking for the Quarantine Deadlock Simulator.

Summarizes a finished run from the agents' counters and the event log.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import statistics

from analysis.events import EventLog, EventType


@dataclass
class SimulationMetrics:
    """
    Accumulated metrics for a single simulation run.

    Tracks four key metrics:
    1. Meals: cycles in which an agent obtained both resources
    2. Starvation Rate: cycles lost to a busy right resource / all cycles
    3. Deadlock Detections: positive ring probes
    4. Time to Saturation: seconds until the quarantine reached its quota
    """
    total_agents: int = 0
    deadlock_count: int = 0
    escalation_count: int = 0
    elapsed: float = 0.0
    saturated: bool = False
    last_escalated_id: Optional[int] = None

    # Per-agent tracking
    agent_cycles: Dict[int, int] = field(default_factory=dict)
    agent_meals: Dict[int, int] = field(default_factory=dict)
    agent_starved: Dict[int, int] = field(default_factory=dict)
    agent_final_states: Dict[int, str] = field(default_factory=dict)
    escalation_order: List[int] = field(default_factory=list)

    def record_agent(self, agent_id: int, cycles: int, meals: int, starved: int, state: str) -> None:
        """
        Record the final counters of one agent.

        Args:
            agent_id: Agent identifier
            cycles: Completed cycles
            meals: Cycles with both resources
            starved: Cycles with a busy right resource
            state: Final agent state
        """
        self.agent_cycles[agent_id] = cycles
        self.agent_meals[agent_id] = meals
        self.agent_starved[agent_id] = starved
        self.agent_final_states[agent_id] = state

    def get_total_cycles(self) -> int:
        return sum(self.agent_cycles.values())

    def get_total_meals(self) -> int:
        return sum(self.agent_meals.values())

    def get_avg_meals(self) -> float:
        """Average meals per agent."""
        if not self.agent_meals:
            return 0.0
        return statistics.mean(self.agent_meals.values())

    def get_starvation_rate(self) -> float:
        """Fraction of completed cycles in which the right resource was busy."""
        total = self.get_total_cycles()
        if total == 0:
            return 0.0
        return sum(self.agent_starved.values()) / total

    def get_state_counts(self) -> Dict[str, int]:
        """Number of agents per final state."""
        counts: Dict[str, int] = {}
        for state in self.agent_final_states.values():
            counts[state] = counts.get(state, 0) + 1
        return counts


def build_metrics(agents, event_log: EventLog, elapsed: float,
                  saturated: bool, escalated_ids) -> SimulationMetrics:
    """
    Collect metrics once the coordinator has stopped waiting.

    Args:
        agents: All agents started by the coordinator
        event_log: Event log shared by the run
        elapsed: Wall-clock duration of the wait in seconds
        saturated: Whether the quarantine saturated
        escalated_ids: Quarantine admission order

    Returns:
        Populated SimulationMetrics
    """
    metrics = SimulationMetrics(
        total_agents=len(agents),
        deadlock_count=len(event_log.get_events_by_type(EventType.DEADLOCK)),
        escalation_count=len(escalated_ids),
        elapsed=elapsed,
        saturated=saturated,
        last_escalated_id=escalated_ids[-1] if escalated_ids else None,
        escalation_order=list(escalated_ids)
    )
    for agent in agents:
        metrics.record_agent(
            agent.agent_id,
            agent.cycles,
            agent.meals,
            agent.starved_cycles,
            agent.state.value
        )
    return metrics


def format_metrics_report(
    metrics: SimulationMetrics,
    verbose: bool = False,
    scenario: str = None,
    stop_reason: str = None
) -> str:
    """
    Format metrics for display at end of simulation.

    Args:
        metrics: SimulationMetrics instance with collected data
        verbose: If True, include per-agent breakdown
        scenario: Scenario file path
        stop_reason: Reason simulation stopped

    Returns:
        Formatted metrics report string
    """
    lines = []
    lines.append("\n" + "="*60)
    lines.append("SIMULATION METRICS")
    lines.append("="*60)

    if scenario:
        lines.append(f"Scenario: {scenario}")
    if stop_reason:
        lines.append(f"Stop Reason: {stop_reason}")
    if scenario or stop_reason:
        lines.append("")

    lines.append(f"Elapsed: {metrics.elapsed:.2f}s")
    lines.append(f"Total Agents: {metrics.total_agents}")
    lines.append(f"Escalated Agents: {metrics.escalation_count}")
    if metrics.last_escalated_id is not None:
        lines.append(f"Last Escalated: Agent {metrics.last_escalated_id}")
    lines.append("")

    lines.append("KEY METRICS:")
    lines.append("-" * 60)
    lines.append(f"1. Meals: {metrics.get_total_meals()} total, {metrics.get_avg_meals():.2f} per agent")
    lines.append(f"2. Starvation Rate: {metrics.get_starvation_rate():.2%} of {metrics.get_total_cycles()} cycles")
    lines.append(f"3. Deadlock Detections: {metrics.deadlock_count}")
    saturation = f"{metrics.elapsed:.2f}s" if metrics.saturated else "not reached"
    lines.append(f"4. Time to Saturation: {saturation}")

    if metrics.agent_final_states:
        lines.append("")
        lines.append("FINAL STATES:")
        lines.append("-" * 60)
        for state, count in sorted(metrics.get_state_counts().items()):
            lines.append(f"  {state:12} {count:3}")

    if verbose and metrics.agent_final_states:
        lines.append("")
        lines.append("PER-AGENT SUMMARY:")
        lines.append("-" * 60)
        for agent_id in sorted(metrics.agent_final_states.keys()):
            lines.append(
                f"  A{agent_id:<3} {metrics.agent_final_states[agent_id]:12} | "
                f"cycles={metrics.agent_cycles.get(agent_id, 0):3} "
                f"meals={metrics.agent_meals.get(agent_id, 0):3} "
                f"starved={metrics.agent_starved.get(agent_id, 0):3}"
            )

    lines.append("="*60)
    return "\n".join(lines)
