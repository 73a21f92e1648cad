"""Deterministic single-state tape stepping."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Tuple

from .states import State
from .transitions import BLANK, TransitionTuple

if TYPE_CHECKING:
    from .automata import Automaton, Computation

logger = logging.getLogger(__name__)


class TapeRun:
    """Current state, tape and head of a Turing machine computation.

    Cells past the end of ``tape`` read as blank; the tape grows one cell at a
    time as the head reaches its end. The head never goes below zero.
    """

    __slots__ = ("accept", "reject", "current", "tape", "head")

    def __init__(self, accept: State, reject: State) -> None:
        self.accept = accept
        self.reject = reject
        self.current: Optional[State] = None
        self.tape = ""
        self.head = 0

    def read(self) -> str:
        if self.head < len(self.tape):
            return self.tape[self.head]
        return BLANK

    def write(self, symbol: str) -> None:
        self.tape = self.tape[: self.head] + symbol + self.tape[self.head + 1 :]


def start(machine: "Automaton", computation: "Computation", run: TapeRun) -> None:
    run.current = machine.start_state
    run.tape = computation.word
    run.head = 0
    _sync_and_check(machine, computation, run)


def step(machine: "Automaton", computation: "Computation", run: TapeRun) -> None:
    if run.head == len(run.tape):
        run.tape += BLANK

    rule = machine.transition_function.get_transition(TransitionTuple.key(run.current, run.read()))
    if rule is None:
        logger.debug("no rule for %r reading %r; halting", run.current.name, run.read())
        computation.answer = False
    else:
        run.write(rule.symbol)
        run.current = rule.state
        run.head = max(0, run.head + (1 if rule.moves_right else -1))
        computation.step += 1

    _sync_and_check(machine, computation, run)


def states_changed(machine: "Automaton", run: TapeRun) -> None:
    return None


def protected_states(run: TapeRun) -> Tuple[State, ...]:
    return (run.accept, run.reject)


def _sync_and_check(machine: "Automaton", computation: "Computation", run: TapeRun) -> None:
    for state in machine.states:
        state.current = state == run.current
    if run.current == run.accept:
        computation.answer = True
    elif run.current == run.reject:
        computation.answer = False
