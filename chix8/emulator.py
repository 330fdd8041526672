"""Main CHIP-8 emulator execution engine."""

from functools import partial

import jax
import jax.lax
import jax.numpy as jnp
from chix8.state import EmulatorState
from chix8.decode import DecodedInstruction, Operation, decode, decode_operation
from chix8.constants import MEMORY_SIZE
from chix8.errors import Fault, fault_code
from chix8.logging import report_unknown_instruction
from chix8.instructions.system import execute_clear_screen, execute_return, execute_unknown
from chix8.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset,
    execute_skip_if_key, execute_skip_if_not_key
)
from chix8.instructions.alu import (
    execute_alu_set, execute_alu_or, execute_alu_and, execute_alu_xor, execute_alu_add,
    execute_alu_sub_xy, execute_alu_shift_right, execute_alu_sub_yx, execute_alu_shift_left
)
from chix8.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chix8.instructions.display import execute_display
from chix8.instructions.misc import (
    execute_get_delay_timer, execute_wait_for_key, execute_set_delay_timer,
    execute_set_sound_timer, execute_add_to_index, execute_font_character,
    execute_bcd_conversion, execute_store_registers, execute_load_registers
)

_HANDLERS = {
    Operation.CLEAR_SCREEN: execute_clear_screen,
    Operation.RETURN: execute_return,
    Operation.JUMP: execute_jump,
    Operation.CALL: execute_call,
    Operation.SKIP_EQ_IMMEDIATE: execute_skip_if_equal_immediate,
    Operation.SKIP_NE_IMMEDIATE: execute_skip_if_not_equal_immediate,
    Operation.SKIP_EQ_REGISTER: execute_skip_if_equal_register,
    Operation.SET_IMMEDIATE: execute_set,
    Operation.ADD_IMMEDIATE: execute_add,
    Operation.SET_REGISTER: execute_alu_set,
    Operation.OR: execute_alu_or,
    Operation.AND: execute_alu_and,
    Operation.XOR: execute_alu_xor,
    Operation.ADD_REGISTER: execute_alu_add,
    Operation.SUB_XY: execute_alu_sub_xy,
    Operation.SHIFT_RIGHT: execute_alu_shift_right,
    Operation.SUB_YX: execute_alu_sub_yx,
    Operation.SHIFT_LEFT: execute_alu_shift_left,
    Operation.SKIP_NE_REGISTER: execute_skip_if_not_equal_register,
    Operation.SET_INDEX: execute_set_index,
    Operation.JUMP_WITH_OFFSET: execute_jump_with_offset,
    Operation.RANDOM: execute_random,
    Operation.DRAW: execute_display,
    Operation.SKIP_IF_KEY: execute_skip_if_key,
    Operation.SKIP_IF_NOT_KEY: execute_skip_if_not_key,
    Operation.GET_DELAY_TIMER: execute_get_delay_timer,
    Operation.WAIT_FOR_KEY: execute_wait_for_key,
    Operation.SET_DELAY_TIMER: execute_set_delay_timer,
    Operation.SET_SOUND_TIMER: execute_set_sound_timer,
    Operation.ADD_TO_INDEX: execute_add_to_index,
    Operation.FONT_CHARACTER: execute_font_character,
    Operation.BCD: execute_bcd_conversion,
    Operation.STORE_REGISTERS: execute_store_registers,
    Operation.LOAD_REGISTERS: execute_load_registers,
    Operation.UNKNOWN: execute_unknown,
}

# Ordered by Operation value; a missing handler fails at import.
DISPATCH_TABLE = tuple(_HANDLERS[operation] for operation in Operation)


def _report_if_unknown(state: EmulatorState, instruction: DecodedInstruction, unknown):
    def report(_):
        # pc already points past the word
        jax.debug.callback(report_unknown_instruction, instruction.raw, state.pc - 2, unknown)
        return None

    jax.lax.cond(unknown, report, lambda _: None, None)


@jax.jit
def execute(state: EmulatorState, instruction: int, report: bool = True) -> EmulatorState:
    """Execute single CHIP-8 instruction.

    pc is expected to already point past the instruction. Faulting
    instructions only set ``state.fault``. Unknown words are reported to the
    package logger unless ``report`` is false.
    """
    decoded_instruction = decode(instruction)
    operation = decode_operation(decoded_instruction)
    _report_if_unknown(
        state, decoded_instruction, (operation == int(Operation.UNKNOWN)) & report
    )
    return jax.lax.switch(operation, DISPATCH_TABLE, state, decoded_instruction)


def _pack_u16(high: jnp.uint8, low: jnp.uint8) -> jnp.uint16:
    """Pack two bytes into uint16."""
    return (high.astype(jnp.uint16) << 8) | low.astype(jnp.uint16)


def fetch_in_bounds(state: EmulatorState) -> jnp.ndarray:
    """True when both bytes of the instruction at pc are addressable."""
    return jnp.astype(state.pc, jnp.int32) + 1 < MEMORY_SIZE


def fetch(state: EmulatorState) -> tuple[EmulatorState, jnp.uint16]:
    """Fetch next instruction from memory."""
    instruction = _pack_u16(state.memory[state.pc], state.memory[state.pc + 1])
    return state.replace(pc=state.pc + 2), instruction


def _cycle(state: EmulatorState, active) -> tuple[EmulatorState, jnp.ndarray]:
    # ``active`` only gates the diagnostic; under vmap the fetch branch also
    # runs for machines that are out of bounds or already stopped.
    start = state.replace(fault=fault_code(Fault.NONE))
    in_bounds = fetch_in_bounds(start)

    def run(state):
        state, instruction = fetch(state)
        return execute(state.replace(opcode=instruction), instruction, active & in_bounds)

    def reject(state):
        return state.replace(fault=fault_code(Fault.PC_OUT_OF_BOUNDS))

    new_state = jax.lax.cond(in_bounds, run, reject, start)
    new_state = jax.lax.cond(
        new_state.fault != int(Fault.NONE),
        lambda s: start.replace(fault=s.fault),
        lambda s: s,
        new_state
    )
    return new_state, new_state.fault


@jax.jit
def step(state: EmulatorState) -> tuple[EmulatorState, jnp.ndarray]:
    """Run one fetch/decode/execute cycle.

    Returns the new state and its fault code. A faulted cycle is discarded:
    the returned state is the pre-cycle state with only ``fault`` set.
    Timers are not touched, see :func:`tick_timers`.
    """
    return _cycle(state, True)


@jax.jit
def tick_timers(state: EmulatorState) -> EmulatorState:
    """Decrement delay and sound timers toward zero (call at 60 Hz)."""
    return state.replace(
        delay_timer=jnp.where(state.delay_timer > 0, state.delay_timer - 1, state.delay_timer),
        sound_timer=jnp.where(state.sound_timer > 0, state.sound_timer - 1, state.sound_timer),
    )


@partial(jax.jit, static_argnums=1)
def run_cycles(state: EmulatorState, num_cycles: int) -> EmulatorState:
    """Run up to ``num_cycles`` cycles, stopping at the first fault."""
    def cond_fn(carry):
        i, state = carry
        return (i < num_cycles) & (state.fault == int(Fault.NONE))

    def body_fn(carry):
        i, state = carry
        state, _ = _cycle(state, cond_fn(carry))
        return i + 1, state

    state = state.replace(fault=fault_code(Fault.NONE))
    _, state = jax.lax.while_loop(cond_fn, body_fn, (jnp.zeros((), dtype=jnp.int32), state))
    return state


@partial(jax.jit, static_argnums=1)
def run_frame(state: EmulatorState, cycles_per_frame: int) -> EmulatorState:
    """Run one host frame: ``cycles_per_frame`` cycles then one timer tick."""
    state = run_cycles(state, cycles_per_frame)
    return jax.lax.cond(state.fault == int(Fault.NONE), tick_timers, lambda s: s, state)
