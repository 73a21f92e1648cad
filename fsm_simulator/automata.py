from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple, Union

from . import pushdown, turing
from .errors import AutomatonError, AutomatonValidationError
from .states import Position, State
from .transitions import TransitionFunction, TransitionTuple, check_symbol

logger = logging.getLogger(__name__)

__all__ = [
    "Automaton",
    "AutomatonError",
    "AutomatonValidationError",
    "Computation",
    "MachineKind",
    "Phase",
]


class MachineKind(Enum):
    PDA = "pda"
    TM = "tm"


class Phase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass
class Computation:
    """Per-run fields shared by every machine kind."""

    word: Optional[str] = None
    step: int = 0
    answer: Optional[bool] = None

    def reset(self, word: str) -> None:
        self.word = word
        self.step = 0
        self.answer = None

    @property
    def at_end(self) -> bool:
        return self.word is not None and self.step >= len(self.word)


Run = Union[pushdown.PushdownRun, turing.TapeRun]

_ENGINES = {
    MachineKind.PDA: pushdown,
    MachineKind.TM: turing,
}


class Automaton:
    """A state diagram plus the computation currently running on it.

    The kind tag picks the stepping module; everything else (state arena,
    transition table, lifecycle record, lock) is shared. Every public
    operation holds the automaton's lock, so an editor mutating the diagram
    and a driver stepping the computation never interleave.
    """

    __slots__ = ("_kind", "_states", "_start", "_function", "_computation", "_run", "_lock")

    def __init__(
        self,
        kind: MachineKind,
        states: Iterable[State],
        start: State,
        function: TransitionFunction,
        run: Run,
    ) -> None:
        self._kind = kind
        self._states: Dict[int, State] = {}
        for state in states:
            if not isinstance(state, State):
                raise AutomatonValidationError("Machines are built from State objects.")
            self._states[state.state_id] = state
        if start.state_id not in self._states:
            raise AutomatonValidationError(f"Start state {start.name!r} is not part of the machine.")
        self._start = start
        self._function = function
        for _, target in function.items():
            self._check_target(target)
        self._computation = Computation()
        self._run = run
        self._lock = threading.RLock()
        self._engine.states_changed(self, self._run)

    # ---------------------------------------------------------------
    @classmethod
    def pushdown(
        cls,
        states: Iterable[State],
        start: State,
        function: Optional[TransitionFunction] = None,
    ) -> "Automaton":
        if function is None:
            function = TransitionFunction(deterministic=False)
        return cls(MachineKind.PDA, states, start, function, pushdown.PushdownRun())

    @classmethod
    def turing(
        cls,
        states: Iterable[State],
        start: State,
        accept: State,
        reject: State,
        function: Optional[TransitionFunction] = None,
    ) -> "Automaton":
        states = list(states)
        for marker in (accept, reject):
            if marker not in states:
                raise AutomatonValidationError(f"State {marker.name!r} is not part of the machine.")
        if accept == reject:
            raise AutomatonValidationError("Accept and reject states must differ.")
        if function is None:
            function = TransitionFunction(deterministic=True)
        return cls(MachineKind.TM, states, start, function, turing.TapeRun(accept=accept, reject=reject))

    @property
    def _engine(self):
        return _ENGINES[self._kind]

    # ---------------------------------------------------------------
    @property
    def kind(self) -> MachineKind:
        return self._kind

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def states(self) -> Tuple[State, ...]:
        with self._lock:
            return tuple(self._states.values())

    @property
    def start_state(self) -> State:
        return self._start

    @property
    def transition_function(self) -> TransitionFunction:
        return self._function

    @property
    def run(self) -> Run:
        return self._run

    @property
    def word(self) -> Optional[str]:
        with self._lock:
            return self._computation.word

    @property
    def steps_taken(self) -> int:
        with self._lock:
            return self._computation.step

    @property
    def phase(self) -> Phase:
        with self._lock:
            if self._computation.word is None:
                return Phase.IDLE
            if self._computation.answer is None:
                return Phase.RUNNING
            return Phase.FINISHED

    @property
    def current_states(self) -> Tuple[State, ...]:
        with self._lock:
            if isinstance(self._run, turing.TapeRun):
                return () if self._run.current is None else (self._run.current,)
            return self._run.current_states

    def get_state(self, state_id: int) -> Optional[State]:
        with self._lock:
            return self._states.get(state_id)

    def __contains__(self, state: object) -> bool:
        with self._lock:
            return isinstance(state, State) and state.state_id in self._states

    def is_finished(self) -> bool:
        with self._lock:
            return self._computation.answer is not None

    def accepts(self) -> Optional[bool]:
        """True or False once decided, None while the computation is undecided."""
        with self._lock:
            return self._computation.answer

    # ---------------------------------------------------------------
    def start_computation(self, word: str) -> None:
        if not isinstance(word, str):
            raise AutomatonValidationError(f"Input words must be strings, got {type(word).__name__}.")
        for letter in word:
            check_symbol(letter)
        with self._lock:
            self._computation.reset(word)
            self._engine.start(self, self._computation, self._run)
            logger.debug("%s started on %r (answer=%s)", self._kind.value, word, self._computation.answer)

    def restart_computation(self) -> None:
        with self._lock:
            if self._computation.word is None:
                logger.warning("restart requested with no computation specified")
                return
            self.start_computation(self._computation.word)

    def step(self) -> None:
        with self._lock:
            if self._computation.answer is not None:
                logger.warning("step requested when the computation is already done")
                return
            if self._computation.word is None:
                logger.warning("step requested with no computation specified")
                return
            self._engine.step(self, self._computation, self._run)

    # ---------------------------------------------------------------
    def add_state(self, state: State) -> None:
        if not isinstance(state, State):
            raise AutomatonValidationError("Machines are built from State objects.")
        with self._lock:
            self._states[state.state_id] = state
            self._engine.states_changed(self, self._run)

    def remove_state(self, state: State) -> bool:
        with self._lock:
            if state.state_id not in self._states:
                return False
            if state == self._start or state in self._engine.protected_states(self._run):
                logger.warning("refusing to remove protected state %r", state.name)
                return False
            removed = self._function.sever(state)
            del self._states[state.state_id]
            state.current = False
            self._engine.states_changed(self, self._run)
            logger.debug("removed state %r and %d transitions", state.name, removed)
            return True

    def set_name(self, state: State, name: str) -> None:
        with self._lock:
            state.name = name

    def set_accept(self, state: State, accept: bool) -> None:
        with self._lock:
            state.accept = accept

    def set_selected(self, state: State, selected: bool) -> None:
        with self._lock:
            state.selected = selected

    def set_position(self, state: State, position: Optional[Position]) -> None:
        with self._lock:
            state.position = position

    def add_transition(self, domain: TransitionTuple, target: TransitionTuple) -> None:
        self._check_target(target)
        with self._lock:
            self._function.add_transition(domain, target)

    def remove_transition(self, domain: TransitionTuple, target: TransitionTuple) -> None:
        with self._lock:
            self._function.remove_transition(domain, target)

    def _check_target(self, target: TransitionTuple) -> None:
        if self._kind is MachineKind.TM and target.direction is None:
            raise AutomatonValidationError("Turing machine targets need a write symbol and a direction.")
        if self._kind is MachineKind.PDA and target.direction is not None:
            raise AutomatonValidationError("Pushdown targets carry a destination state only.")

    def __repr__(self) -> str:
        return (
            f"Automaton({self._kind.value}, states={len(self._states)}, "
            f"start={self._start.name!r}, phase={self.phase.value})"
        )
