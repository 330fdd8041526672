"""Run configuration for the headless runner."""

from dataclasses import dataclass
from typing import Optional, Sequence

from omegaconf import OmegaConf

from chix8.constants import TIMER_FREQUENCY
from chix8.logging import LEVELS


@dataclass
class RunConfig:
    """Headless run parameters.

    Attributes:
        rom: Path to the program image; a path given on the command line wins
        seed: Seed for the machine's random number generator (CXNN)
        frames: Number of 60 Hz frames to run
        cycles_per_frame: Instructions executed per frame (10 gives ~600 Hz)
        log_level: Console log level
        progress: Show a progress bar while running
        show_display: Print the frame buffer as text once the run ends
    """
    rom: Optional[str] = None
    seed: int = 0
    frames: int = TIMER_FREQUENCY * 10
    cycles_per_frame: int = 10
    log_level: str = "INFO"
    progress: bool = True
    show_display: bool = False


def validate_config(config: RunConfig) -> RunConfig:
    if config.frames <= 0:
        raise ValueError(f"frames must be positive, got {config.frames}")
    if config.cycles_per_frame <= 0:
        raise ValueError(f"cycles_per_frame must be positive, got {config.cycles_per_frame}")
    if config.log_level.upper() not in LEVELS:
        raise ValueError(
            f"Unsupported log_level '{config.log_level}'. Supported levels: {list(LEVELS)}"
        )
    return config


def load_config(path: Optional[str] = None, overrides: Sequence[str] = ()) -> RunConfig:
    """Build a RunConfig from defaults, an optional YAML file and ``key=value`` overrides."""
    cfg = OmegaConf.structured(RunConfig)
    if path is not None:
        cfg = OmegaConf.merge(cfg, OmegaConf.load(path))
    if overrides:
        cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(list(overrides)))
    return validate_config(OmegaConf.to_object(cfg))
