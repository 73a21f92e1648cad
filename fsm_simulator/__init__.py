from .automata import Automaton, AutomatonError, AutomatonValidationError, MachineKind, Phase
from .cli import Session, build_session_from_payload, run
from .editing import DiagramEditor
from .states import State
from .transitions import BLANK, EPSILON, TransitionFunction, TransitionTuple

__all__ = [
    "Automaton",
    "AutomatonError",
    "AutomatonValidationError",
    "BLANK",
    "DiagramEditor",
    "EPSILON",
    "MachineKind",
    "Phase",
    "Session",
    "State",
    "TransitionFunction",
    "TransitionTuple",
    "build_session_from_payload",
    "run",
]
