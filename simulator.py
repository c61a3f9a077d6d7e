#!/usr/bin/env python3
"""
Quarantine Deadlock Simulator
Main entry point for the simulation system.

Seats N agents around each of M arena rings, lets them contend for their
left and right resources until rings deadlock, escalates deadlocked agents
into a shared quarantine arena and stops once that arena saturates.
"""

import argparse
import random
import sys
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from models.agent import Agent, AgentTiming
from models.arena import Arena
from models.quarantine import QuarantineArena
from utils.logger import SimulatorLogger
from utils.scenario_loader import (
    SimulationConfig,
    ScenarioLoadError,
    build_config,
    get_scenario_description,
    load_scenario,
)
from analysis.analyzer import analyze_runs
from analysis.events import EventLog
from analysis.metrics import SimulationMetrics, build_metrics, format_metrics_report


# Seconds granted to each agent thread to wind down after the run
JOIN_TIMEOUT = 0.5


@dataclass
class SimulationResult:
    """Outcome of one coordinator run."""
    saturated: bool
    last_escalated_id: Optional[int]
    escalated_ids: List[int]
    stop_reason: str
    metrics: SimulationMetrics
    event_log: EventLog = field(repr=False, default=None)


class Coordinator:
    """
    Builds the arenas, starts every agent and waits for quarantine saturation.

    Attributes:
        config: Validated simulation parameters
        logger: Logging sink shared by every component
        event_log: Event record shared by every component
        quarantine: Shared escalation target
        arenas: Primary arenas in construction order
        agents: Every agent, ids slot + arena_index * N
    """

    def __init__(
        self,
        config: SimulationConfig,
        logger: Optional[SimulatorLogger] = None,
        event_log: Optional[EventLog] = None,
        arena_factory: Callable[..., Arena] = Arena
    ):
        self.config = config
        self.logger = logger or SimulatorLogger()
        self.event_log = event_log if event_log is not None else EventLog()
        self.stop_event = threading.Event()
        self.quarantine = QuarantineArena(config.quota, arena_id=config.arenas)
        self.arenas: List[Arena] = []
        self.agents: List[Agent] = []
        self._threads: List[threading.Thread] = []
        self._arena_factory = arena_factory
        self._build()

    def _build(self) -> None:
        """Construct arenas and seat an agent at every slot."""
        timing = AgentTiming(
            think_max=self.config.think_max,
            eat_max=self.config.eat_max,
            hold_delay=self.config.hold_delay
        )
        n = self.config.agents_per_arena

        for arena_index in range(self.config.arenas):
            arena = self._arena_factory(
                arena_index,
                n,
                self.quarantine,
                logger=self.logger,
                event_log=self.event_log
            )
            self.arenas.append(arena)

            for slot in range(n):
                agent_id = slot + arena_index * n
                self.agents.append(Agent(
                    agent_id=agent_id,
                    slot=slot,
                    left=arena.left_resource(slot),
                    right=arena.right_resource(slot),
                    home=arena,
                    timing=timing,
                    logger=self.logger,
                    event_log=self.event_log,
                    stop_event=self.stop_event,
                    rng=self._agent_rng(agent_id)
                ))

    def _agent_rng(self, agent_id: int) -> random.Random:
        if self.config.seed is None:
            return random.Random()
        return random.Random(self.config.seed * 100003 + agent_id)

    def start(self) -> None:
        """Start one daemon thread per agent."""
        for agent in self.agents:
            thread = threading.Thread(
                target=agent.run,
                name=f"agent-{agent.agent_id}",
                daemon=True
            )
            self._threads.append(thread)
            thread.start()

    def wait_for_saturation(self) -> bool:
        """
        Poll the quarantine until it saturates.

        The wait wakes as soon as saturation is signalled and otherwise
        re-checks every poll interval. Without a run timeout it never gives up.

        Returns:
            True if saturated, False if the run timeout elapsed first
        """
        deadline = None
        if self.config.run_timeout is not None:
            deadline = time.monotonic() + self.config.run_timeout

        while True:
            interval = self.config.poll_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return self.quarantine.saturated
                interval = min(interval, remaining)

            if self.quarantine.wait_saturated(interval):
                return True

            self.logger.log(
                f"Coordinator poll: quarantine {len(self.quarantine)}/{self.quarantine.quota}",
                "debug"
            )

    def shutdown(self) -> None:
        """
        Interrupt sleeping agents and give their threads a moment to finish.

        Agents blocked on a left acquire wake only when the holder lets go;
        threads still alive after the join timeout are daemons and do not
        keep the process running.
        """
        self.stop_event.set()
        for thread in self._threads:
            thread.join(JOIN_TIMEOUT)

    def run(self) -> SimulationResult:
        """
        Run the simulation to saturation (or the optional timeout).

        Returns:
            SimulationResult with the last escalated agent and run metrics
        """
        if self.config.quota > self.config.total_agents:
            self.logger.log(
                f"Quota {self.config.quota} exceeds the {self.config.total_agents} agents "
                f"available; the quarantine can never saturate",
                "warning"
            )

        started = time.monotonic()
        self.start()
        try:
            saturated = self.wait_for_saturation()
            # Agents already past their saturation check may still escalate
            # while the threads wind down; report the quarantine as it stood
            # when the quota was reached
            escalated_ids = list(self.quarantine.escalated_ids)
            if saturated:
                escalated_ids = escalated_ids[:self.config.quota]
                last_id = self.quarantine.saturated_by
            else:
                last_id = self.quarantine.last_escalated_id
        finally:
            elapsed = time.monotonic() - started
            self.shutdown()

        if saturated:
            stop_reason = f"Quarantine saturated - last agent moved: Agent {last_id}"
        else:
            stop_reason = f"Run timeout after {elapsed:.2f}s - quarantine {len(escalated_ids)}/{self.config.quota}"

        metrics = build_metrics(self.agents, self.event_log, elapsed, saturated, escalated_ids)
        return SimulationResult(
            saturated=saturated,
            last_escalated_id=last_id,
            escalated_ids=escalated_ids,
            stop_reason=stop_reason,
            metrics=metrics,
            event_log=self.event_log
        )


def run_simulation(
    config: SimulationConfig,
    verbose: bool = False,
    log_file: Optional[str] = None,
    echo: bool = True,
    scenario: Optional[str] = None
) -> SimulationResult:
    """
    Run the simulation with the given parameters.

    Args:
        config: Validated simulation parameters
        verbose: Enable debug logging (probe results, coordinator polls)
        log_file: Optional log file path
        echo: Print log lines to the console
        scenario: Scenario file the config was loaded from, shown in the
            banner and the metrics report

    Returns:
        SimulationResult
    """
    logger = SimulatorLogger(verbose=verbose, log_file=log_file, echo=echo)

    logger.log(f"\n{'='*60}")
    logger.log("SIMULATION START")
    if scenario:
        logger.log(f"Scenario: {scenario}")
        description = get_scenario_description(scenario)
        if description:
            logger.log(f"Description: {description}")
    logger.log(
        f"Arenas: {config.arenas} x {config.agents_per_arena} agents, quarantine quota {config.quota}"
    )
    logger.log(
        f"Think < {config.think_max}s, eat < {config.eat_max}s, hold delay {config.hold_delay}s, "
        f"poll every {config.poll_interval}s"
    )
    logger.log(f"{'='*60}\n")

    try:
        coordinator = Coordinator(config, logger=logger)
        result = coordinator.run()

        logger.log(f"\n{'='*60}")
        logger.log("SIMULATION COMPLETE")
        logger.log(result.stop_reason)
        logger.log(f"{'='*60}")
        logger.log(format_metrics_report(
            result.metrics,
            verbose=verbose,
            scenario=scenario,
            stop_reason=result.stop_reason
        ))
    finally:
        logger.close()

    return result


def build_parser() -> argparse.ArgumentParser:
    """Command-line interface of the simulator."""
    parser = argparse.ArgumentParser(
        description='Quarantine Deadlock Simulator'
    )
    parser.add_argument(
        '--scenario',
        type=str,
        help='Path to scenario JSON file (flags below override its values)'
    )
    parser.add_argument('--arenas', type=int, help='Number of primary arenas (default: 5)')
    parser.add_argument('--agents', type=int, dest='agents_per_arena',
                        help='Agents per arena (default: 5)')
    parser.add_argument('--quota', type=int, help='Quarantine saturation quota (default: 5)')
    parser.add_argument('--think-max', type=float, help='Max thinking time in seconds (default: 10)')
    parser.add_argument('--eat-max', type=float, help='Max eating time in seconds (default: 5)')
    parser.add_argument('--hold-delay', type=float,
                        help='Pause between left and right pickup in seconds (default: 4)')
    parser.add_argument('--poll-interval', type=float,
                        help='Coordinator poll interval in seconds (default: 1)')
    parser.add_argument('--seed', type=int, help='Seed for reproducible think/eat draws')
    parser.add_argument('--timeout', type=float, dest='run_timeout',
                        help='Give up waiting after this many seconds (default: wait forever)')
    parser.add_argument('--verbose', action='store_true', help='Enable verbose logging')
    parser.add_argument('--log-file', type=str, help='Also write the log to this file')
    parser.add_argument(
        '--runs',
        type=int,
        default=1,
        help='Number of simulation runs; more than one prints a batch summary (default: 1)'
    )
    return parser


CONFIG_FLAGS = (
    'arenas', 'agents_per_arena', 'quota', 'think_max', 'eat_max',
    'hold_delay', 'poll_interval', 'seed', 'run_timeout'
)


def config_from_args(args: argparse.Namespace) -> SimulationConfig:
    """
    Resolve the scenario file (if any) and apply flag overrides.

    Raises:
        ScenarioLoadError: If the scenario or an override is invalid
    """
    base = load_scenario(args.scenario) if args.scenario else None
    overrides = {name: getattr(args, name) for name in CONFIG_FLAGS}
    return build_config(overrides, base=base)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the simulator."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.runs <= 0:
        parser.error('--runs must be positive')

    try:
        config = config_from_args(args)
    except ScenarioLoadError as e:
        print(f"[ERROR] Failed to load scenario: {e}")
        return 2

    if args.runs > 1:
        summary, _ = analyze_runs(config, args.runs, run_simulation_func=run_simulation,
                                  verbose_runs=args.verbose)
        print(summary.display())
        return 0 if summary.saturated_runs == summary.total_runs else 1

    result = run_simulation(config, verbose=args.verbose, log_file=args.log_file,
                            scenario=args.scenario)
    return 0 if result.saturated else 1


if __name__ == '__main__':
    sys.exit(main())
