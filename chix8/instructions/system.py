"""CHIP-8 system instructions (0x0xxx) and shared handler helpers."""

import jax
import jax.lax
import jax.numpy as jnp
from chix8.state import EmulatorState
from chix8.decode import DecodedInstruction
from chix8.errors import Fault, fault_code
from chix8.stack import pop, is_empty


def make_guarded_instruction(fault_condition_fn, fault: Fault, handler):
    """Factory for handlers that must fault instead of running on bad input.

    When ``fault_condition_fn`` holds, only the state's fault code changes.
    """
    def faulted(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        return state.replace(fault=fault_code(fault))

    def guarded_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        return jax.lax.cond(
            fault_condition_fn(state, instruction),
            faulted,
            handler,
            state, instruction
        )
    return guarded_instruction


def execute_unknown(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Instruction word with no defined operation: carry on.

    The diagnostic is raised by the engine, see :func:`chix8.emulator.execute`.
    """
    return state


def execute_clear_screen(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00E0 - Clear display."""
    return state.replace(display=jnp.zeros_like(state.display))


def _return(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    stack, address = pop(state.stack)
    return state.replace(stack=stack, pc=address)


execute_return = make_guarded_instruction(
    lambda state, inst: is_empty(state.stack), Fault.STACK_UNDERFLOW, _return
)
execute_return.__doc__ = """00EE - Return from subroutine."""
