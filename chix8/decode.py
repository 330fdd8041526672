"""CHIP-8 instruction decoding."""

import enum

import jax.numpy as jnp
import numpy as np
from chex import dataclass


@dataclass(frozen=True)
class DecodedInstruction:
    """Decoded CHIP-8 instruction with extracted operands."""
    raw: int
    opcode: int  # First nibble
    x: int       # Second nibble (VX register)
    y: int       # Third nibble (VY register)
    n: int       # Fourth nibble (4-bit immediate)
    nn: int      # Last byte (8-bit immediate)
    nnn: int     # Last 12 bits (12-bit address)


class Operation(enum.IntEnum):
    """Every operation of the base instruction set, plus UNKNOWN.

    The values index the engine's dispatch table.
    """
    CLEAR_SCREEN = 0            # 00E0
    RETURN = 1                  # 00EE
    JUMP = 2                    # 1NNN
    CALL = 3                    # 2NNN
    SKIP_EQ_IMMEDIATE = 4       # 3XNN
    SKIP_NE_IMMEDIATE = 5       # 4XNN
    SKIP_EQ_REGISTER = 6        # 5XY0
    SET_IMMEDIATE = 7           # 6XNN
    ADD_IMMEDIATE = 8           # 7XNN
    SET_REGISTER = 9            # 8XY0
    OR = 10                     # 8XY1
    AND = 11                    # 8XY2
    XOR = 12                    # 8XY3
    ADD_REGISTER = 13           # 8XY4
    SUB_XY = 14                 # 8XY5
    SHIFT_RIGHT = 15            # 8XY6
    SUB_YX = 16                 # 8XY7
    SHIFT_LEFT = 17             # 8XYE
    SKIP_NE_REGISTER = 18       # 9XY0
    SET_INDEX = 19              # ANNN
    JUMP_WITH_OFFSET = 20       # BNNN
    RANDOM = 21                 # CXNN
    DRAW = 22                   # DXYN
    SKIP_IF_KEY = 23            # EX9E
    SKIP_IF_NOT_KEY = 24        # EXA1
    GET_DELAY_TIMER = 25        # FX07
    WAIT_FOR_KEY = 26           # FX0A
    SET_DELAY_TIMER = 27        # FX15
    SET_SOUND_TIMER = 28        # FX18
    ADD_TO_INDEX = 29           # FX1E
    FONT_CHARACTER = 30         # FX29
    BCD = 31                    # FX33
    STORE_REGISTERS = 32        # FX55
    LOAD_REGISTERS = 33         # FX65
    UNKNOWN = 34


def _lookup_table(size: int, entries: dict) -> jnp.ndarray:
    table = np.full(size, int(Operation.UNKNOWN), dtype=np.int32)
    for selector, operation in entries.items():
        table[selector] = int(operation)
    return jnp.asarray(table)


# Families selected by the first nibble alone; 0, 8, E and F use a sub-selector.
_FAMILY_OPERATIONS = _lookup_table(16, {
    0x1: Operation.JUMP,
    0x2: Operation.CALL,
    0x3: Operation.SKIP_EQ_IMMEDIATE,
    0x4: Operation.SKIP_NE_IMMEDIATE,
    0x5: Operation.SKIP_EQ_REGISTER,
    0x6: Operation.SET_IMMEDIATE,
    0x7: Operation.ADD_IMMEDIATE,
    0x9: Operation.SKIP_NE_REGISTER,
    0xA: Operation.SET_INDEX,
    0xB: Operation.JUMP_WITH_OFFSET,
    0xC: Operation.RANDOM,
    0xD: Operation.DRAW,
})

_ALU_OPERATIONS = _lookup_table(16, {
    0x0: Operation.SET_REGISTER,
    0x1: Operation.OR,
    0x2: Operation.AND,
    0x3: Operation.XOR,
    0x4: Operation.ADD_REGISTER,
    0x5: Operation.SUB_XY,
    0x6: Operation.SHIFT_RIGHT,
    0x7: Operation.SUB_YX,
    0xE: Operation.SHIFT_LEFT,
})

_KEY_OPERATIONS = _lookup_table(256, {
    0x9E: Operation.SKIP_IF_KEY,
    0xA1: Operation.SKIP_IF_NOT_KEY,
})

_MISC_OPERATIONS = _lookup_table(256, {
    0x07: Operation.GET_DELAY_TIMER,
    0x0A: Operation.WAIT_FOR_KEY,
    0x15: Operation.SET_DELAY_TIMER,
    0x18: Operation.SET_SOUND_TIMER,
    0x1E: Operation.ADD_TO_INDEX,
    0x29: Operation.FONT_CHARACTER,
    0x33: Operation.BCD,
    0x55: Operation.STORE_REGISTERS,
    0x65: Operation.LOAD_REGISTERS,
})


def decode(instruction: int) -> DecodedInstruction:
    """Decode 16-bit instruction into components."""
    return DecodedInstruction(
        raw=instruction,
        opcode=(instruction & 0xF000) >> 12,
        x=(instruction & 0x0F00) >> 8,
        y=(instruction & 0x00F0) >> 4,
        n=instruction & 0x000F,
        nn=instruction & 0x00FF,
        nnn=instruction & 0x0FFF
    )


def decode_operation(instruction: DecodedInstruction) -> jnp.ndarray:
    """Resolve a decoded instruction to its ``Operation`` value (int32 scalar)."""
    system = jnp.where(
        instruction.raw == 0x00E0,
        int(Operation.CLEAR_SCREEN),
        jnp.where(instruction.raw == 0x00EE, int(Operation.RETURN), int(Operation.UNKNOWN)),
    )
    return jnp.select(
        [
            instruction.opcode == 0x0,
            instruction.opcode == 0x8,
            instruction.opcode == 0xE,
            instruction.opcode == 0xF,
        ],
        [
            system,
            _ALU_OPERATIONS[instruction.n],
            _KEY_OPERATIONS[instruction.nn],
            _MISC_OPERATIONS[instruction.nn],
        ],
        default=_FAMILY_OPERATIONS[instruction.opcode],
    ).astype(jnp.int32)
