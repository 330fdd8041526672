"""CHIP-8 miscellaneous instructions (Fxxx)."""

import jax
import jax.lax
import jax.numpy as jnp
from chix8.state import EmulatorState
from chix8.decode import DecodedInstruction
from chix8.constants import FONT_START, FONT_CHAR_SIZE, MEMORY_SIZE, NUM_REGISTERS
from chix8.errors import Fault
from chix8.instructions.system import make_guarded_instruction


def _index_end(state: EmulatorState, length) -> jnp.ndarray:
    """One past the last address touched by an I-relative access of ``length`` bytes."""
    return jnp.astype(state.I, jnp.int32) + length


def execute_get_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX07 - Set VX to delay timer value."""
    return state.replace(V=state.V.at[instruction.x].set(state.delay_timer))


def execute_set_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX15 - Set delay timer to VX."""
    return state.replace(delay_timer=state.V[instruction.x])


def execute_set_sound_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX18 - Set sound timer to VX."""
    return state.replace(sound_timer=state.V[instruction.x])


def execute_add_to_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX1E - Add VX to I register (16-bit, VF untouched)."""
    return state.replace(I=state.I + jnp.astype(state.V[instruction.x], jnp.uint16))


def execute_wait_for_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX0A - Wait for key press (blocking).

    Blocking re-runs the instruction: pc is rewound until a key is down,
    then VX receives the lowest pressed key.
    """
    def key_pressed_action(state):
        pressed_key = jnp.astype(jnp.argmax(state.keypad), jnp.uint8)
        return state.replace(V=state.V.at[instruction.x].set(pressed_key))

    def wait_action(state):
        return state.replace(pc=state.pc - 2)

    return jax.lax.cond(jnp.any(state.keypad), key_pressed_action, wait_action, state)


def execute_font_character(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX29 - Set I to location of sprite for digit VX."""
    font_address = FONT_START + jnp.astype(state.V[instruction.x], jnp.uint16) * FONT_CHAR_SIZE
    return state.replace(I=jnp.astype(font_address, jnp.uint16))


def _bcd(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    value = state.V[instruction.x]
    digits = jnp.array([
        value // 100,
        (value // 10) % 10,
        value % 10
    ], dtype=jnp.uint8)
    indices = jnp.arange(3) + jnp.astype(state.I, jnp.int32)
    return state.replace(memory=state.memory.at[indices].set(digits))


execute_bcd_conversion = make_guarded_instruction(
    lambda state, inst: _index_end(state, 3) > MEMORY_SIZE,
    Fault.MEMORY_OUT_OF_BOUNDS,
    _bcd,
)
execute_bcd_conversion.__doc__ = """FX33 - Store BCD representation of VX at I, I+1, I+2."""


def _register_window(state: EmulatorState, instruction: DecodedInstruction):
    """Mask of V0..VX and the memory addresses they map to."""
    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    base_indices = jnp.astype(state.I, jnp.int32) + jnp.arange(NUM_REGISTERS)
    return register_mask, base_indices


def _store_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    register_mask, base_indices = _register_window(state, instruction)
    current_memory_values = state.memory.at[base_indices].get(mode="fill", fill_value=0)
    new_memory_values = jnp.where(register_mask, state.V, current_memory_values)
    new_memory = state.memory.at[base_indices].set(new_memory_values, mode="drop")
    return state.replace(memory=new_memory)


def _load_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    register_mask, base_indices = _register_window(state, instruction)
    memory_values = state.memory.at[base_indices].get(mode="fill", fill_value=0)
    return state.replace(V=jnp.where(register_mask, memory_values, state.V))


def _register_window_out_of_bounds(state: EmulatorState, instruction: DecodedInstruction) -> jnp.ndarray:
    return _index_end(state, jnp.astype(instruction.x, jnp.int32) + 1) > MEMORY_SIZE


execute_store_registers = make_guarded_instruction(
    _register_window_out_of_bounds, Fault.MEMORY_OUT_OF_BOUNDS, _store_registers
)
execute_store_registers.__doc__ = """FX55 - Store V0 through VX in memory starting at I."""

execute_load_registers = make_guarded_instruction(
    _register_window_out_of_bounds, Fault.MEMORY_OUT_OF_BOUNDS, _load_registers
)
execute_load_registers.__doc__ = """FX65 - Load V0 through VX from memory starting at I."""
