"""CHIP-8 emulator package."""

from chix8.state import EmulatorState, StackState, create_state, load_program, load_rom, with_keypad
from chix8.emulator import execute, fetch, step, tick_timers, run_cycles, run_frame
from chix8.decode import DecodedInstruction, Operation, decode, decode_operation
from chix8.errors import (
    Fault, Chip8Error, ProgramTooLargeError, MachineFaultError, StackOverflowError,
    StackUnderflowError, MemoryAccessError, ProgramCounterError, raise_for_fault,
)
from chix8.constants import *

__all__ = [
    "EmulatorState",
    "StackState",
    "create_state",
    "load_program",
    "load_rom",
    "with_keypad",
    "fetch",
    "execute",
    "step",
    "tick_timers",
    "run_cycles",
    "run_frame",
    "DecodedInstruction",
    "Operation",
    "decode",
    "decode_operation",
    "Fault",
    "Chip8Error",
    "ProgramTooLargeError",
    "MachineFaultError",
    "StackOverflowError",
    "StackUnderflowError",
    "MemoryAccessError",
    "ProgramCounterError",
    "raise_for_fault",
    "MEMORY_SIZE",
    "PROGRAM_START",
    "FONT_START",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "STACK_SIZE",
]
