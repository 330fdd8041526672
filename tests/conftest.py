"""Test configuration and fixtures for CHIP-8 emulator tests."""

import pytest
import jax.numpy as jnp
from chix8 import create_state, load_program
from chix8.logging import get_logger


@pytest.fixture
def fresh_state():
    """Provide a fresh emulator state for each test."""
    return create_state()


@pytest.fixture
def load(fresh_state):
    """Load a program given as a list of 16-bit instruction words."""
    def _load(words):
        program = bytearray()
        for word in words:
            program += bytes([(word >> 8) & 0xFF, word & 0xFF])
        return load_program(fresh_state, program)
    return _load


@pytest.fixture
def warnings_log(monkeypatch):
    """Collect messages sent to the package logger at WARNING level."""
    messages = []
    monkeypatch.setattr(get_logger(), "warning", messages.append)
    return messages


def setup_sprite_in_memory(state, address, sprite_bytes):
    """Helper to put sprite data in memory."""
    return state.replace(
        memory=state.memory.at[address:address+len(sprite_bytes)].set(
            jnp.array(sprite_bytes, dtype=jnp.uint8)
        )
    )
