"""Non-deterministic stepping with epsilon closure.

The live configuration is a membership vector over the machine's states,
kept as an integer bitmask whose bit ``i`` marks the ``i``-th state in arena
order. NFAs run on this engine as well; their tables simply never mention a
stack symbol.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, FrozenSet, Iterable, Tuple

from .states import State
from .transitions import EPSILON, TransitionTuple

if TYPE_CHECKING:
    from .automata import Automaton, Computation

logger = logging.getLogger(__name__)


def _iter_bits(mask: int) -> Iterable[int]:
    while mask:
        low = mask & -mask
        yield low.bit_length() - 1
        mask ^= low


class PushdownRun:
    __slots__ = ("mask", "order", "index")

    def __init__(self) -> None:
        self.mask = 0
        self.order: Tuple[State, ...] = ()
        self.index: Dict[State, int] = {}

    @property
    def membership(self) -> Tuple[bool, ...]:
        return tuple(bool(self.mask & (1 << idx)) for idx in range(len(self.order)))

    @property
    def current_states(self) -> Tuple[State, ...]:
        return tuple(self.order[idx] for idx in _iter_bits(self.mask))

    @property
    def dead(self) -> bool:
        return self.mask == 0

    def mask_of(self, states: Iterable[State]) -> int:
        mask = 0
        for state in states:
            idx = self.index.get(state)
            if idx is not None:
                mask |= 1 << idx
        return mask


def _targets(machine: "Automaton", run: PushdownRun, state: State, letter: str) -> int:
    results = machine.transition_function.get_transitions(TransitionTuple.key(state, letter))
    return run.mask_of(target.state for target in results)


def epsilon_closure(machine: "Automaton", mask: int) -> int:
    """Grow ``mask`` by every state reachable through epsilon transitions.

    Full passes over the marked states repeat until a pass marks nothing new,
    so applying the closure to its own result changes nothing.
    """
    run = machine.run
    with machine.lock:
        changed = True
        while changed:
            changed = False
            for idx in list(_iter_bits(mask)):
                reached = _targets(machine, run, run.order[idx], EPSILON)
                if reached & ~mask:
                    mask |= reached
                    changed = True
        return mask


def closure_of(machine: "Automaton", states: Iterable[State]) -> FrozenSet[State]:
    run = machine.run
    with machine.lock:
        mask = epsilon_closure(machine, run.mask_of(states))
        return frozenset(run.order[idx] for idx in _iter_bits(mask))


def start(machine: "Automaton", computation: "Computation", run: PushdownRun) -> None:
    run.mask = epsilon_closure(machine, run.mask_of([machine.start_state]))
    _sync_and_check(computation, run)


def step(machine: "Automaton", computation: "Computation", run: PushdownRun) -> None:
    letter = computation.word[computation.step]
    next_mask = 0
    for idx in _iter_bits(run.mask):
        next_mask |= _targets(machine, run, run.order[idx], letter)
    run.mask = epsilon_closure(machine, next_mask)

    if run.dead:
        logger.debug("every branch died on %r at position %d", letter, computation.step)
        computation.answer = False
        _sync_and_check(computation, run)
        return

    computation.step += 1
    _sync_and_check(computation, run)


def states_changed(machine: "Automaton", run: PushdownRun) -> None:
    """Re-size the membership vector after the arena gained or lost states."""
    run.order = machine.states
    run.index = {state: idx for idx, state in enumerate(run.order)}
    run.mask = run.mask_of(state for state in run.order if state.current)


def protected_states(run: PushdownRun) -> Tuple[State, ...]:
    return ()


def _sync_and_check(computation: "Computation", run: PushdownRun) -> None:
    for idx, state in enumerate(run.order):
        state.current = bool(run.mask & (1 << idx))

    if computation.answer is not None or not computation.at_end:
        return
    computation.answer = any(state.accept for state in run.current_states)
