"""CHIP-8 display operations."""

import jax.numpy as jnp
from chix8.state import EmulatorState
from chix8.decode import DecodedInstruction
from chix8.constants import SCREEN_WIDTH, SCREEN_HEIGHT, SPRITE_WIDTH, MEMORY_SIZE, FLAG_REGISTER
from chix8.errors import Fault
from chix8.instructions.system import make_guarded_instruction

# Pre-computed coordinate grids for display operations
xx, yy = jnp.meshgrid(jnp.arange(SCREEN_WIDTH), jnp.arange(SCREEN_HEIGHT), indexing='ij')


def _draw(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    # Origin wraps, the sprite itself is clipped at the right and bottom edges.
    sprite_x = jnp.astype(state.V[instruction.x], jnp.int32) % SCREEN_WIDTH
    sprite_y = jnp.astype(state.V[instruction.y], jnp.int32) % SCREEN_HEIGHT

    in_sprite = (
        (xx >= sprite_x) & (xx < sprite_x + SPRITE_WIDTH)
        & (yy >= sprite_y) & (yy < sprite_y + instruction.n)
    )

    row_offset = yy - sprite_y
    col_offset = xx - sprite_x
    addresses = jnp.astype(state.I, jnp.int32) + jnp.where(in_sprite, row_offset, 0)
    sprite_bytes = state.memory.at[addresses].get(mode="fill", fill_value=0)
    shift = jnp.where(in_sprite, 7 - col_offset, 0)
    sprite = ((jnp.astype(sprite_bytes, jnp.int32) >> shift) & 1).astype(jnp.bool_) & in_sprite

    collision = jnp.any(state.display & sprite)
    return state.replace(
        display=state.display ^ sprite,
        V=state.V.at[FLAG_REGISTER].set(jnp.astype(collision, jnp.uint8))
    )


execute_display = make_guarded_instruction(
    lambda state, inst: jnp.astype(state.I, jnp.int32) + inst.n > MEMORY_SIZE,
    Fault.MEMORY_OUT_OF_BOUNDS,
    _draw,
)
execute_display.__doc__ = """DXYN - Draw sprite at (VX, VY) with height N, VF = collision."""
