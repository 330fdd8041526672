"""CHIP-8 ALU operations (8xxx).

Each ``alu_*`` function maps the operand pair (VX, VY) to the new VX and,
for the flag-producing operations, the new VF. The flag is written after
the result, so an operation targeting VF itself leaves the flag in VF.
"""

import jax.numpy as jnp
from chix8.state import EmulatorState
from chix8.decode import DecodedInstruction
from chix8.constants import FLAG_REGISTER


def alu_or(vx: jnp.ndarray, vy: jnp.ndarray) -> jnp.ndarray:
    """8XY1 - Binary OR: VX |= VY."""
    return vx | vy


def alu_and(vx: jnp.ndarray, vy: jnp.ndarray) -> jnp.ndarray:
    """8XY2 - Binary AND: VX &= VY."""
    return vx & vy


def alu_xor(vx: jnp.ndarray, vy: jnp.ndarray) -> jnp.ndarray:
    """8XY3 - Logical XOR: VX ^= VY."""
    return vx ^ vy


def alu_add(vx: jnp.ndarray, vy: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    """8XY4 - Add: VX += VY, VF = carry."""
    result = jnp.astype(vx, jnp.int32) + jnp.astype(vy, jnp.int32)
    return result & 0xFF, result > 0xFF


def alu_sub_xy(vx: jnp.ndarray, vy: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    """8XY5 - Subtract: VX -= VY, VF = 1 if VX > VY (NOT borrow)."""
    return vx - vy, vx > vy


def alu_shift_right(vx: jnp.ndarray, vy: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    """8XY6 - Shift right: VX >>= 1, VF = shifted-out bit."""
    return vx >> 1, vx & 1


def alu_sub_yx(vx: jnp.ndarray, vy: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    """8XY7 - Subtract: VX = VY - VX, VF = 1 if VY > VX."""
    return vy - vx, vy > vx


def alu_shift_left(vx: jnp.ndarray, vy: jnp.ndarray) -> tuple[jnp.ndarray, jnp.ndarray]:
    """8XYE - Shift left: VX <<= 1, VF = shifted-out bit."""
    return (jnp.astype(vx, jnp.int32) << 1) & 0xFF, (vx & 0x80) >> 7


def make_alu_instruction(operation):
    """Handler writing VX only."""
    def alu_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        result = operation(state.V[instruction.x], state.V[instruction.y])
        return state.replace(V=state.V.at[instruction.x].set(jnp.astype(result, jnp.uint8)))
    alu_instruction.__doc__ = operation.__doc__
    return alu_instruction


def make_flag_alu_instruction(operation):
    """Handler writing VX, then VF."""
    def alu_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        result, flag = operation(state.V[instruction.x], state.V[instruction.y])
        new_V = state.V.at[instruction.x].set(jnp.astype(result, jnp.uint8))
        new_V = new_V.at[FLAG_REGISTER].set(jnp.astype(flag, jnp.uint8))
        return state.replace(V=new_V)
    alu_instruction.__doc__ = operation.__doc__
    return alu_instruction


def execute_alu_set(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """8XY0 - Set: VX = VY."""
    return state.replace(V=state.V.at[instruction.x].set(state.V[instruction.y]))


execute_alu_or = make_alu_instruction(alu_or)
execute_alu_and = make_alu_instruction(alu_and)
execute_alu_xor = make_alu_instruction(alu_xor)
execute_alu_add = make_flag_alu_instruction(alu_add)
execute_alu_sub_xy = make_flag_alu_instruction(alu_sub_xy)
execute_alu_shift_right = make_flag_alu_instruction(alu_shift_right)
execute_alu_sub_yx = make_flag_alu_instruction(alu_sub_yx)
execute_alu_shift_left = make_flag_alu_instruction(alu_shift_left)
