"""Tests for the fetch/decode/execute cycle, timers and the run loops."""

import jax
import jax.numpy as jnp
import pytest
from chix8 import (
    step, fetch, tick_timers, run_cycles, run_frame, raise_for_fault, Fault,
    StackOverflowError, StackUnderflowError, MemoryAccessError, ProgramCounterError,
)


class TestFetch:

    def test_fetch_is_big_endian(self, load):
        state = load([0xA2F0])
        state, instruction = fetch(state)
        assert instruction == 0xA2F0
        assert state.pc == 0x202


class TestStep:

    def test_set_then_add(self, load):
        state = load([0x6005, 0x7003])

        state, fault = step(state)
        assert int(fault) == Fault.NONE
        assert state.V[0] == 5
        assert state.opcode == 0x6005

        state, fault = step(state)
        assert state.V[0] == 8
        assert state.pc == 0x204
        assert state.opcode == 0x7003

    def test_skip_taken_advances_four(self, load):
        state = load([0x3000])  # V0 == 0
        state, _ = step(state)
        assert state.pc == 0x204

    def test_skip_not_taken_advances_two(self, load):
        state = load([0x3001])
        state, _ = step(state)
        assert state.pc == 0x202

    def test_call_and_return_resume_after_call(self, load):
        state = load([0x2204, 0x0000, 0x00EE])

        state, _ = step(state)
        assert state.pc == 0x204
        assert state.stack.data[0] == 0x202

        state, _ = step(state)
        assert state.pc == 0x202
        assert state.stack.pointer == 0

    def test_fetch_past_memory_faults(self, fresh_state):
        state = fresh_state.replace(pc=jnp.uint16(0xFFF))

        new_state, fault = step(state)

        assert int(fault) == Fault.PC_OUT_OF_BOUNDS
        assert new_state.pc == 0xFFF
        assert bool((new_state.V == state.V).all())

    def test_last_full_instruction_is_fetched(self, fresh_state):
        state = fresh_state.replace(
            pc=jnp.uint16(0xFFE),
            memory=fresh_state.memory.at[0xFFE].set(0x61).at[0xFFF].set(0x2A),
        )

        state, fault = step(state)

        assert int(fault) == Fault.NONE
        assert state.V[1] == 0x2A
        assert state.pc == 0x1000

    def test_underflow_rolls_back_cycle(self, load):
        state = load([0x00EE])

        new_state, fault = step(state)

        assert int(fault) == Fault.STACK_UNDERFLOW
        assert int(new_state.fault) == Fault.STACK_UNDERFLOW
        assert new_state.pc == 0x200
        assert new_state.opcode == state.opcode

    def test_overflow_rolls_back_cycle(self, load):
        state = load([0x2200])  # calls itself forever
        for _ in range(16):
            state, fault = step(state)
            assert int(fault) == Fault.NONE
        assert state.stack.pointer == 16

        new_state, fault = step(state)

        assert int(fault) == Fault.STACK_OVERFLOW
        assert new_state.pc == 0x200
        assert new_state.stack.pointer == 16

    def test_memory_fault_rolls_back_cycle(self, load):
        state = load([0xF233])
        state = state.replace(I=jnp.uint16(0xFFE), V=state.V.at[2].set(123))

        new_state, fault = step(state)

        assert int(fault) == Fault.MEMORY_OUT_OF_BOUNDS
        assert new_state.pc == 0x200
        assert new_state.memory[0xFFE] == 0

    def test_fault_is_cleared_on_next_step(self, load):
        state = load([0x6001])
        state = state.replace(fault=jnp.uint8(int(Fault.STACK_UNDERFLOW)))

        state, fault = step(state)

        assert int(fault) == Fault.NONE
        assert state.V[0] == 1

    def test_unknown_instruction_is_skipped(self, load, warnings_log):
        state = load([0x8AB8])

        state, fault = step(state)
        jax.effects_barrier()

        assert int(fault) == Fault.NONE
        assert state.pc == 0x202
        assert len(warnings_log) == 1
        assert "0x8AB8" in warnings_log[0]
        assert "pc=0x200" in warnings_log[0]

    def test_step_does_not_tick_timers(self, load):
        state = load([0x6001])
        state = state.replace(delay_timer=jnp.uint8(5), sound_timer=jnp.uint8(5))

        state, _ = step(state)

        assert state.delay_timer == 5
        assert state.sound_timer == 5


class TestTimers:

    def test_tick_decrements(self, fresh_state):
        state = fresh_state.replace(delay_timer=jnp.uint8(2), sound_timer=jnp.uint8(1))

        state = tick_timers(state)
        assert state.delay_timer == 1
        assert state.sound_timer == 0

        state = tick_timers(state)
        assert state.delay_timer == 0
        assert state.sound_timer == 0

    def test_tick_at_zero_stays_zero(self, fresh_state):
        state = tick_timers(fresh_state)
        assert state.delay_timer == 0
        assert state.sound_timer == 0


class TestRunLoops:

    def test_run_cycles(self, load):
        state = load([0x7001, 0x1200])  # V0 += 1; jump back

        state = run_cycles(state, 10)

        assert state.V[0] == 5
        assert int(state.fault) == Fault.NONE

    def test_run_cycles_stops_at_fault(self, load):
        state = load([0x6001, 0x00EE, 0x6002])

        state = run_cycles(state, 10)

        assert int(state.fault) == Fault.STACK_UNDERFLOW
        assert state.pc == 0x202
        assert state.V[0] == 1

    def test_run_frame_ticks_once(self, load):
        state = load([0x1200])
        state = state.replace(delay_timer=jnp.uint8(10))

        state = run_frame(state, 7)

        assert state.delay_timer == 9
        assert state.pc == 0x200

    def test_run_frame_with_fault_does_not_tick(self, load):
        state = load([0x00EE])
        state = state.replace(delay_timer=jnp.uint8(10))

        state = run_frame(state, 7)

        assert int(state.fault) == Fault.STACK_UNDERFLOW
        assert state.delay_timer == 10

    def test_delay_timer_countdown_program(self, load):
        # V0 = 3; DT = V0; V1 = DT; skip unless V1 == 0; jump back
        state = load([0x6003, 0xF015, 0xF107, 0x3100, 0x1204, 0x120A])

        for _ in range(4):
            state = run_frame(state, 4)

        assert state.delay_timer == 0
        assert state.V[1] == 0
        assert state.pc in (0x20A, 0x20C)


class TestRaiseForFault:

    def test_no_fault_does_not_raise(self):
        raise_for_fault(Fault.NONE)
        raise_for_fault(jnp.uint8(0))

    @pytest.mark.parametrize("fault,error", [
        (Fault.STACK_OVERFLOW, StackOverflowError),
        (Fault.STACK_UNDERFLOW, StackUnderflowError),
        (Fault.MEMORY_OUT_OF_BOUNDS, MemoryAccessError),
        (Fault.PC_OUT_OF_BOUNDS, ProgramCounterError),
    ])
    def test_fault_maps_to_error(self, fault, error):
        with pytest.raises(error) as excinfo:
            raise_for_fault(jnp.uint8(int(fault)), pc=0x2A4)
        assert excinfo.value.fault == fault
        assert "0x2A4" in str(excinfo.value)

    def test_fault_from_step(self, load):
        _, fault = step(load([0x00EE]))
        with pytest.raises(StackUnderflowError):
            raise_for_fault(fault)


def stack_states(*states):
    return jax.tree_util.tree_map(lambda *leaves: jnp.stack(leaves), *states)


class TestVmap:
    """Independent machines batched with jax.vmap."""

    def test_batched_step_keeps_faults_per_machine(self, load):
        batch = stack_states(load([0x00EE]), load([0x6005]))

        states, faults = jax.vmap(step)(batch)

        assert int(faults[0]) == Fault.STACK_UNDERFLOW
        assert int(faults[1]) == Fault.NONE
        assert states.pc[0] == 0x200
        assert states.pc[1] == 0x202
        assert states.V[1, 0] == 5

    def test_batched_run_frame_matches_single_machines(self, load):
        programs = [
            [0x7001, 0x1200],
            [0x6003, 0xF015, 0x1204],
            [0x6001, 0x00EE],
        ]
        singles = [run_frame(load(words), 4) for words in programs]

        batched = jax.vmap(lambda s: run_frame(s, 4))(stack_states(*[load(w) for w in programs]))

        for i, single in enumerate(singles):
            assert batched.pc[i] == single.pc
            assert bool((batched.V[i] == single.V).all())
            assert batched.delay_timer[i] == single.delay_timer
            assert batched.fault[i] == single.fault

    def test_known_words_are_not_reported(self, load, warnings_log):
        batch = stack_states(*[load([0x7001, 0x1200]) for _ in range(3)])

        jax.vmap(lambda s: run_frame(s, 4))(batch)
        jax.vmap(step)(batch)
        jax.effects_barrier()

        assert warnings_log == []

    def test_only_unknown_words_are_reported(self, load, warnings_log):
        batch = stack_states(load([0x6005]), load([0x8AB8]))

        states, _ = jax.vmap(step)(batch)
        jax.effects_barrier()

        assert warnings_log == ["Unknown instruction 0x8AB8 (pc=0x200), ignored"]
        assert states.pc[1] == 0x202

    def test_stopped_machines_are_not_reported(self, load, warnings_log):
        # Second machine jumps to the last byte and faults on the next fetch;
        # the clamped read there would decode as 0x0101.
        runaway = load([0x1FFF])
        runaway = runaway.replace(memory=runaway.memory.at[0xFFF].set(0x01))
        batch = stack_states(load([0x1200]), runaway)

        states = jax.vmap(lambda s: run_cycles(s, 5))(batch)
        jax.effects_barrier()

        assert int(states.fault[0]) == Fault.NONE
        assert int(states.fault[1]) == Fault.PC_OUT_OF_BOUNDS
        assert states.pc[1] == 0xFFF
        assert warnings_log == []
