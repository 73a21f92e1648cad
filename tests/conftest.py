"""
Shared machines for the fsm_simulator test suite.
"""

import pytest

from fsm_simulator.automata import Automaton
from fsm_simulator.states import State
from fsm_simulator.transitions import BLANK, EPSILON, RIGHT, TransitionFunction, TransitionTuple


@pytest.fixture
def astar_bstar():
    """
    PDA for a*b*: start loops on 'a', epsilon to q1, q1 loops on 'b'.

    Both states accept. Returns (machine, start, q1).
    """
    start = State("start", accept=True)
    q1 = State("q1", accept=True)
    function = TransitionFunction(deterministic=False)
    function.add_transition(TransitionTuple.key(start, "a"), TransitionTuple.target(start))
    function.add_transition(TransitionTuple.key(start, EPSILON), TransitionTuple.target(q1))
    function.add_transition(TransitionTuple.key(q1, "b"), TransitionTuple.target(q1))
    return Automaton.pushdown([start, q1], start, function), start, q1


@pytest.fixture
def unary_increment():
    """
    TM that walks right over 1s and writes one more 1 on the first blank.

    Returns (machine, start, accept, reject).
    """
    start = State("start")
    accept = State("accept", accept=True)
    reject = State("reject")
    machine = Automaton.turing([start, accept, reject], start, accept, reject)
    machine.add_transition(TransitionTuple.key(start, "1"), TransitionTuple.target(start, "1", RIGHT))
    machine.add_transition(TransitionTuple.key(start, BLANK), TransitionTuple.target(accept, "1", RIGHT))
    return machine, start, accept, reject
