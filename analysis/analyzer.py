"""
Batch Analysis Library for the Quarantine Deadlock Simulator.

Called by simulator.py --runs to repeat a scenario and aggregate the
outcomes. This is a library module, not a standalone CLI tool.
"""

from typing import Callable, List, Optional, Tuple
from dataclasses import dataclass, replace

import numpy as np

from utils.scenario_loader import SimulationConfig


@dataclass
class RunResult:
    """Results from a single simulation run."""
    run_number: int
    saturated: bool
    elapsed: float
    last_escalated_id: Optional[int]
    deadlock_count: int
    total_meals: int
    starvation_rate: float


@dataclass
class BatchSummary:
    """Aggregate of repeated runs of one scenario."""
    total_runs: int
    saturated_runs: int
    mean_time_to_saturation: float
    std_time_to_saturation: float
    min_time_to_saturation: float
    max_time_to_saturation: float
    mean_deadlocks: float
    mean_meals: float
    mean_starvation_rate: float
    last_escalated_by_arena: List[int]

    def display(self) -> str:
        """Format results for display."""
        result = f"\nRuns: {self.total_runs} total, {self.saturated_runs} saturated\n"
        if self.saturated_runs:
            result += (
                f"  Time to saturation: mean={self.mean_time_to_saturation:.2f}s "
                f"std={self.std_time_to_saturation:.2f}s "
                f"min={self.min_time_to_saturation:.2f}s max={self.max_time_to_saturation:.2f}s\n"
            )
        else:
            result += "  Time to saturation: never reached\n"
        result += f"  Avg deadlock detections: {self.mean_deadlocks:.2f}\n"
        result += f"  Avg meals: {self.mean_meals:.2f}\n"
        result += f"  Avg starvation rate: {self.mean_starvation_rate:.2%}\n"
        arenas = ", ".join(f"arena {i}: {n}" for i, n in enumerate(self.last_escalated_by_arena))
        result += f"  Last escalated agent by arena: {arenas}"
        return result


def summarize_runs(runs: List[RunResult], config: SimulationConfig) -> BatchSummary:
    """
    Aggregate run results.

    Args:
        runs: Results of the individual runs
        config: Scenario the runs used (for arena attribution of agent ids)

    Returns:
        BatchSummary
    """
    times = np.array([r.elapsed for r in runs if r.saturated], dtype=float)
    deadlocks = np.array([r.deadlock_count for r in runs], dtype=float)
    meals = np.array([r.total_meals for r in runs], dtype=float)
    starvation = np.array([r.starvation_rate for r in runs], dtype=float)

    # Agent ids are slot + arena * N, so the arena is id // N
    last_arenas = np.array(
        [r.last_escalated_id // config.agents_per_arena
         for r in runs if r.last_escalated_id is not None],
        dtype=int
    )
    by_arena = np.bincount(last_arenas, minlength=config.arenas)

    def _mean(values: np.ndarray) -> float:
        return float(values.mean()) if values.size else 0.0

    return BatchSummary(
        total_runs=len(runs),
        saturated_runs=int(times.size),
        mean_time_to_saturation=_mean(times),
        std_time_to_saturation=float(times.std()) if times.size else 0.0,
        min_time_to_saturation=float(times.min()) if times.size else 0.0,
        max_time_to_saturation=float(times.max()) if times.size else 0.0,
        mean_deadlocks=_mean(deadlocks),
        mean_meals=_mean(meals),
        mean_starvation_rate=_mean(starvation),
        last_escalated_by_arena=[int(n) for n in by_arena]
    )


def analyze_runs(
    config: SimulationConfig,
    num_runs: int,
    run_simulation_func: Callable = None,
    verbose_runs: bool = False
) -> Tuple[BatchSummary, List[RunResult]]:
    """
    Run a scenario several times and aggregate the results.

    When a seed is configured, run i uses seed + i so runs differ but the
    batch stays reproducible.

    Args:
        config: Scenario to repeat
        num_runs: Number of simulation runs
        run_simulation_func: Function to run simulation (injected from simulator.py)
        verbose_runs: Enable full transition logging for every run

    Returns:
        Tuple of (BatchSummary, List[RunResult])
    """
    if run_simulation_func is None:
        raise ValueError("run_simulation_func must be provided")
    if num_runs <= 0:
        raise ValueError(f"num_runs must be positive, got {num_runs}")

    run_results: List[RunResult] = []

    print(f"\nRunning {num_runs} simulations")

    for run_idx in range(num_runs):
        run_config = config
        if config.seed is not None:
            run_config = replace(config, seed=config.seed + run_idx)

        result = run_simulation_func(run_config, verbose=verbose_runs, echo=verbose_runs)
        metrics = result.metrics
        run_results.append(RunResult(
            run_number=run_idx + 1,
            saturated=result.saturated,
            elapsed=metrics.elapsed,
            last_escalated_id=result.last_escalated_id,
            deadlock_count=metrics.deadlock_count,
            total_meals=metrics.get_total_meals(),
            starvation_rate=metrics.get_starvation_rate()
        ))

        print(f"  Run {run_idx + 1}/{num_runs}: {result.stop_reason}")

    return summarize_runs(run_results, config), run_results
