"""
Logger utility for the Quarantine Deadlock Simulator.

Provides the human-readable logging sink every agent, arena and the
coordinator report their transitions to.
"""

import threading
import time
from typing import Optional
from datetime import datetime


class SimulatorLogger:
    """
    Logger for simulation events and decisions.

    Format: "[  12.345s] Agent 7 picked up left resource (arena 1, slot 2)"

    Agents run on their own threads, so every write goes through a single
    lock and lines are never interleaved.
    """

    def __init__(self, verbose: bool = False, log_file: Optional[str] = None, echo: bool = True):
        """
        Initialize logger.

        Args:
            verbose: Enable debug output
            log_file: Optional file path for logging
            echo: Print to the console (disable to log only to file)
        """
        self.verbose = verbose
        self.log_file = log_file
        self.echo = echo
        self.file_handle = None
        self._lock = threading.Lock()
        self._started = time.monotonic()

        if self.log_file:
            self.file_handle = open(self.log_file, 'w', encoding='utf-8')
            self._write_header()

    def _write_header(self) -> None:
        """Write log file header."""
        if self.file_handle:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.file_handle.write(f"Simulation Log - {timestamp}\n")
            self.file_handle.write("="*60 + "\n\n")

    def elapsed(self) -> float:
        """Seconds since the logger was created."""
        return time.monotonic() - self._started

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error)
        """
        if level == "debug" and not self.verbose:
            return

        formatted = self._format_message(message, level)

        with self._lock:
            if self.echo:
                print(formatted)

            if self.file_handle:
                self.file_handle.write(formatted + "\n")
                self.file_handle.flush()

    def _format_message(self, message: str, level: str) -> str:
        """Format message with level prefix."""
        if level == "error":
            return f"[ERROR] {message}"
        elif level == "warning":
            return f"[WARNING] {message}"
        elif level == "debug":
            return f"[DEBUG] {message}"
        else:
            return message

    def log_transition(self, agent_id: int, message: str, level: str = "info") -> None:
        """Log one agent state transition, stamped with the elapsed time."""
        self.log(f"[{self.elapsed():8.3f}s] Agent {agent_id} {message}", level)

    def log_deadlock(self, arena_id: int, agent_id: int) -> None:
        """
        Log a positive deadlock probe.

        Args:
            arena_id: Arena whose ring was found fully held
            agent_id: Agent that ran the probe
        """
        self.log_transition(agent_id, f"detected DEADLOCK at arena {arena_id}")

    def log_escalation(self, agent_id: int, arena_id: int, count: int, quota: int) -> None:
        """
        Log an agent moving to the quarantine arena.

        Args:
            agent_id: Escalated agent
            arena_id: Arena the agent left
            count: Quarantine occupancy after the move
            quota: Quarantine saturation quota
        """
        self.log_transition(
            agent_id,
            f"moves from arena {arena_id} to the quarantine arena ({count}/{quota})"
        )

    def log_saturation(self, last_agent_id: int, count: int) -> None:
        """Log the quarantine arena reaching its quota."""
        self.log(
            f"[{self.elapsed():8.3f}s] QUARANTINE SATURATED with {count} agents "
            f"- last agent moved: Agent {last_agent_id}"
        )

    def close(self) -> None:
        """Close log file if open."""
        with self._lock:
            if self.file_handle:
                self.file_handle.close()
                self.file_handle = None

    def __del__(self):
        """Cleanup on destruction."""
        if getattr(self, "file_handle", None):
            self.file_handle.close()
            self.file_handle = None
