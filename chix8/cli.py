"""Headless CHIP-8 runner.

Loads a ROM, runs it for a number of 60 Hz frames and reports the final
machine state. Rendering and keyboard input are left to real front ends.

    chix8 roms/pong.ch8 frames=300 cycles_per_frame=12
"""

import argparse
import dataclasses
import sys

import jax
from omegaconf.errors import OmegaConfBaseException
from tqdm import tqdm

from chix8.config import load_config
from chix8.constants import SCREEN_WIDTH, SCREEN_HEIGHT
from chix8.emulator import run_frame
from chix8.errors import Chip8Error, Fault
from chix8.logging import get_logger, set_log_level
from chix8.state import create_state, load_rom


def format_display(display) -> str:
    """Render the frame buffer as 32 lines of '#' (on) and '.' (off)."""
    return "\n".join(
        "".join("#" if display[x, y] else "." for x in range(SCREEN_WIDTH))
        for y in range(SCREEN_HEIGHT)
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chix8", description="Run a CHIP-8 program without a display."
    )
    parser.add_argument(
        "rom",
        nargs="?",
        default=None,
        help="Path to the program image (defaults to the rom setting)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML file with run settings",
    )
    parser.add_argument(
        "overrides",
        nargs="*",
        help="Setting overrides as key=value (e.g. frames=120 seed=3)",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logger = get_logger()

    try:
        overrides = list(args.overrides)
        if args.rom is not None and "=" in args.rom:
            # no positional path given, the first override landed in rom
            overrides.insert(0, args.rom)
            args.rom = None
        config = load_config(args.config, overrides)
        if args.rom is not None:
            config.rom = args.rom
        if config.rom is None:
            raise ValueError("No program image given")
        set_log_level(config.log_level)
        state = load_rom(create_state(jax.random.PRNGKey(config.seed)), config.rom)
    except (OSError, ValueError, Chip8Error, OmegaConfBaseException) as e:
        logger.error(f"Could not start: {e}")
        return 2

    logger.log_run_start(dataclasses.asdict(config))

    frames_run = 0
    for _ in tqdm(range(config.frames), desc="Frames", unit="frame", disable=not config.progress):
        state = run_frame(state, config.cycles_per_frame)
        frames_run += 1
        if int(state.fault) != Fault.NONE:
            break

    fault = Fault(int(state.fault))
    if fault != Fault.NONE:
        logger.log_fault(fault.name, int(state.pc))

    logger.log_run_end(state, frames_run)
    if config.show_display:
        print(format_display(jax.device_get(state.display)))
    return 0 if fault == Fault.NONE else 1


if __name__ == "__main__":
    sys.exit(main())
