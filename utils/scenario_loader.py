"""
Scenario Loader for the Quarantine Deadlock Simulator.

Loads and validates JSON scenario files describing the simulation
parameters, and overlays command-line overrides on top of them.
"""

import json
from dataclasses import dataclass, asdict, fields, replace
from typing import Any, Dict, Optional


class ScenarioLoadError(Exception):
    """Exception raised when scenario file cannot be loaded or is invalid."""
    pass


@dataclass(frozen=True)
class SimulationConfig:
    """
    Validated simulation parameters. Times are in seconds.

    Attributes:
        arenas: Number of primary arenas M
        agents_per_arena: Agents (and resources) per arena ring N
        quota: Quarantine saturation quota K
        think_max: Upper bound of the random thinking time
        eat_max: Upper bound of the random eating time
        hold_delay: Pause between taking the left and probing the right resource
        poll_interval: Coordinator polling interval for quarantine saturation
        seed: Optional seed making per-agent random draws reproducible
        run_timeout: Optional bound on the coordinator wait (None waits forever)
    """
    arenas: int = 5
    agents_per_arena: int = 5
    quota: int = 5
    think_max: float = 10.0
    eat_max: float = 5.0
    hold_delay: float = 4.0
    poll_interval: float = 1.0
    seed: Optional[int] = None
    run_timeout: Optional[float] = None

    @property
    def total_agents(self) -> int:
        """N * M agents started by the coordinator."""
        return self.arenas * self.agents_per_arena

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


_INT_FIELDS = ('arenas', 'agents_per_arena', 'quota')
_DURATION_FIELDS = ('think_max', 'eat_max', 'hold_delay')


def load_scenario(file_path: str) -> SimulationConfig:
    """
    Load scenario from JSON file.

    Missing keys keep their defaults; a "description" key is allowed and
    ignored.

    Args:
        file_path: Path to scenario JSON file

    Returns:
        Validated SimulationConfig

    Raises:
        ScenarioLoadError: If file cannot be loaded or is invalid
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ScenarioLoadError(f"Scenario file not found: {file_path}")
    except json.JSONDecodeError as e:
        raise ScenarioLoadError(f"Invalid JSON in scenario file: {e}")

    if not isinstance(data, dict):
        raise ScenarioLoadError("Scenario must be a JSON object")

    data = {k: v for k, v in data.items() if k != 'description'}
    return build_config(data)


def build_config(values: Dict[str, Any], base: Optional[SimulationConfig] = None) -> SimulationConfig:
    """
    Apply overrides to a base config and validate the result.

    Args:
        values: Field overrides; None values are skipped
        base: Starting config (defaults if omitted)

    Returns:
        Validated SimulationConfig

    Raises:
        ScenarioLoadError: On unknown fields or invalid values
    """
    known = {f.name for f in fields(SimulationConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ScenarioLoadError(f"Unknown scenario field(s): {', '.join(unknown)}")

    overrides = {k: v for k, v in values.items() if v is not None}
    config = replace(base or SimulationConfig(), **overrides)
    validate_config(config)
    return config


def validate_config(config: SimulationConfig) -> None:
    """
    Validate every parameter of a config.

    Raises:
        ScenarioLoadError: If any parameter is out of range
    """
    for name in _INT_FIELDS:
        value = getattr(config, name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ScenarioLoadError(f"'{name}' must be an integer, got {value!r}")
        if value <= 0:
            raise ScenarioLoadError(f"'{name}' must be positive, got {value}")

    # A one-slot ring would make an agent's left and right the same resource
    if config.agents_per_arena < 2:
        raise ScenarioLoadError(
            f"'agents_per_arena' must be at least 2, got {config.agents_per_arena}"
        )

    for name in _DURATION_FIELDS:
        value = _number(config, name)
        if value < 0:
            raise ScenarioLoadError(f"'{name}' cannot be negative, got {value}")

    if _number(config, 'poll_interval') <= 0:
        raise ScenarioLoadError(f"'poll_interval' must be positive, got {config.poll_interval}")

    if config.run_timeout is not None and _number(config, 'run_timeout') <= 0:
        raise ScenarioLoadError(f"'run_timeout' must be positive, got {config.run_timeout}")

    if config.seed is not None and (isinstance(config.seed, bool) or not isinstance(config.seed, int)):
        raise ScenarioLoadError(f"'seed' must be an integer, got {config.seed!r}")


def _number(config: SimulationConfig, name: str) -> float:
    value = getattr(config, name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ScenarioLoadError(f"'{name}' must be a number, got {value!r}")
    return float(value)


def get_scenario_description(file_path: str) -> str:
    """
    Get description from scenario file without full loading.

    Args:
        file_path: Path to scenario JSON file

    Returns:
        Description string, or empty string if not present or unreadable
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return ''
    if not isinstance(data, dict):
        return ''
    return data.get('description', '')
