"""Machine faults and the exceptions hosts can raise for them.

Faults that happen while a cycle runs cannot be raised from inside a traced
JAX computation, so handlers record a :class:`Fault` code in the machine state
instead. Hosts running eagerly can turn that code into an exception with
:func:`raise_for_fault`.
"""

import enum

import jax.numpy as jnp


class Fault(enum.IntEnum):
    """Fault code stored in ``EmulatorState.fault``."""
    NONE = 0
    STACK_OVERFLOW = 1
    STACK_UNDERFLOW = 2
    MEMORY_OUT_OF_BOUNDS = 3
    PC_OUT_OF_BOUNDS = 4


def fault_code(fault: Fault) -> jnp.ndarray:
    """Fault as a uint8 scalar suitable for the state pytree."""
    return jnp.asarray(int(fault), dtype=jnp.uint8)


class Chip8Error(Exception):
    """Base class for all chix8 errors."""


class ProgramTooLargeError(Chip8Error, ValueError):
    """Program image does not fit between the load address and end of memory."""

    def __init__(self, size: int, capacity: int):
        super().__init__(f"Program of {size} bytes exceeds the {capacity} bytes available")
        self.size = size
        self.capacity = capacity


class MachineFaultError(Chip8Error):
    """A cycle was rejected by the machine."""
    fault = Fault.NONE

    def __init__(self, message: str = None):
        super().__init__(message or self.fault.name.replace("_", " ").lower())


class StackOverflowError(MachineFaultError):
    fault = Fault.STACK_OVERFLOW


class StackUnderflowError(MachineFaultError):
    fault = Fault.STACK_UNDERFLOW


class MemoryAccessError(MachineFaultError):
    fault = Fault.MEMORY_OUT_OF_BOUNDS


class ProgramCounterError(MachineFaultError):
    fault = Fault.PC_OUT_OF_BOUNDS


_FAULT_ERRORS = {
    Fault.STACK_OVERFLOW: StackOverflowError,
    Fault.STACK_UNDERFLOW: StackUnderflowError,
    Fault.MEMORY_OUT_OF_BOUNDS: MemoryAccessError,
    Fault.PC_OUT_OF_BOUNDS: ProgramCounterError,
}


def raise_for_fault(fault, pc=None) -> None:
    """Raise the exception matching a fault code, do nothing for ``Fault.NONE``."""
    fault = Fault(int(fault))
    if fault == Fault.NONE:
        return
    error_cls = _FAULT_ERRORS[fault]
    message = None
    if pc is not None:
        message = f"{fault.name.replace('_', ' ').lower()} at pc=0x{int(pc):03X}"
    raise error_cls(message)
