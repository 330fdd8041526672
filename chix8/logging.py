"""Console logging for chix8.

The headless runner reports through :class:`RunLogger`, and the engine
reports unknown instruction words through :func:`report_unknown_instruction`,
which it reaches via ``jax.debug.callback`` so reporting works under ``jit``
and ``vmap``.
"""

import time
import sys
from typing import Any, Dict

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
_RESET = "\033[0m"


class ConsoleLogger:
    """Level-filtered logger printing ``[elapsed][LEVEL] message`` lines to stdout."""

    def __init__(self, log_level: str = "INFO", use_colors: bool = True):
        self.set_level(log_level)
        self.use_colors = use_colors and hasattr(sys.stdout, "isatty") and sys.stdout.isatty()
        self.start_time = time.time()

    def set_level(self, log_level: str):
        level = log_level.upper()
        if level not in LEVELS:
            raise ValueError(f"Unknown log level '{log_level}'")
        self.log_level = level

    def _format_message(self, level: str, message: str) -> str:
        level_str = f"[{level:>8s}]"
        if self.use_colors:
            level_str = f"{_COLORS[level]}{level_str}{_RESET}"
        return f"[{time.time() - self.start_time:8.2f}s]{level_str} {message}"

    def log(self, level: str, message: str):
        level = level.upper()
        if LEVELS.index(level) >= LEVELS.index(self.log_level):
            print(self._format_message(level, message), flush=True)

    def debug(self, message: str):
        self.log("DEBUG", message)

    def info(self, message: str):
        self.log("INFO", message)

    def warning(self, message: str):
        self.log("WARNING", message)

    def error(self, message: str):
        self.log("ERROR", message)

    def critical(self, message: str):
        self.log("CRITICAL", message)


class RunLogger(ConsoleLogger):
    """Logger for headless runs: configuration, faults and final machine state."""

    def log_run_start(self, config: Dict[str, Any]):
        """Log run configuration and start message."""
        self.info("=" * 60)
        self.info("Starting run with configuration:")
        for key, value in config.items():
            self.info(f"  {key}: {value}")
        self.info("=" * 60)

    def log_fault(self, fault_name: str, pc: int):
        self.error(f"Machine fault {fault_name} at pc=0x{pc:03X}")

    def log_run_end(self, state, frames: int):
        """Log elapsed time and the final register file."""
        elapsed = time.time() - self.start_time
        self.info("=" * 60)
        self.info(f"Ran {frames} frames in {elapsed:.2f}s")
        self.info(f"  pc=0x{int(state.pc):03X} I=0x{int(state.I):03X} sp={int(state.stack.pointer)}")
        self.info(f"  delay={int(state.delay_timer)} sound={int(state.sound_timer)}")
        for i in range(0, 16, 8):
            registers = " ".join(f"V{j:X}={int(state.V[j]):02X}" for j in range(i, i + 8))
            self.info(f"  {registers}")
        self.info("=" * 60)


_logger = RunLogger()


def get_logger() -> RunLogger:
    """Return the package-wide logger."""
    return _logger


def set_log_level(log_level: str):
    _logger.set_level(log_level)


def report_unknown_instruction(raw, pc, unknown=True):
    """Diagnostic for instruction words that decode to no operation.

    ``unknown`` is checked here rather than only in traced code: under ``vmap``
    both arms of the engine's ``cond`` run for every machine in the batch.
    """
    if not bool(unknown):
        return
    _logger.warning(f"Unknown instruction 0x{int(raw):04X} (pc=0x{int(pc):03X}), ignored")
