from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import AutomatonValidationError
from .states import State

NUL = "\0"
EPSILON = "\x01"
BLANK = EPSILON
EPSILON_CHAR = "\xa3"
SYMBOL_LIMIT = 256

RIGHT = True
LEFT = False


def check_symbol(symbol: str) -> str:
    if not isinstance(symbol, str) or len(symbol) != 1:
        raise AutomatonValidationError(f"Symbols must be single characters, got {symbol!r}.")
    if ord(symbol) >= SYMBOL_LIMIT:
        raise AutomatonValidationError(f"Symbol {symbol!r} is outside the 0-255 range.")
    return symbol


@dataclass(frozen=True)
class TransitionTuple:
    """A transition-table key or result.

    Domain tuples are ``(state, letter[, symbol])``; range tuples are
    ``(state)`` for NFA/PDA targets or ``(state, symbol, direction)`` for TM
    targets. ``direction`` is None when absent, True for a move right and
    False for a move left.
    """

    state: State
    letter: str = NUL
    symbol: str = NUL
    direction: Optional[bool] = None

    def __post_init__(self) -> None:
        if not isinstance(self.state, State):
            raise AutomatonValidationError("Transition tuples need a State.")
        check_symbol(self.letter)
        check_symbol(self.symbol)
        if self.direction is not None and not isinstance(self.direction, bool):
            raise AutomatonValidationError("Direction must be True, False or None.")

    @staticmethod
    def key(state: State, letter: str, symbol: str = NUL) -> "TransitionTuple":
        return TransitionTuple(state, letter, symbol)

    @staticmethod
    def target(
        state: State,
        symbol: Optional[str] = None,
        direction: Optional[bool] = None,
    ) -> "TransitionTuple":
        if symbol is None:
            return TransitionTuple(state)
        if direction is None:
            raise AutomatonValidationError("Tape targets need a direction.")
        return TransitionTuple(state, NUL, symbol, direction)

    @property
    def moves_right(self) -> bool:
        return bool(self.direction)


class TransitionFunction:
    """Maps a domain tuple to an ordered list of range tuples.

    NFA and PDA tables are non-deterministic: one key can lead to several
    targets. TM tables are deterministic: adding a target replaces whatever
    the key held before, so every key has at most one result.
    """

    __slots__ = ("_transitions", "_deterministic")

    def __init__(self, deterministic: bool) -> None:
        self._transitions: Dict[TransitionTuple, List[TransitionTuple]] = {}
        self._deterministic = deterministic

    @property
    def deterministic(self) -> bool:
        return self._deterministic

    def add_transition(self, domain: TransitionTuple, target: TransitionTuple) -> None:
        targets = self._transitions.setdefault(domain, [])
        if self._deterministic:
            targets.clear()
        targets.append(target)

    def remove_transition(self, domain: TransitionTuple, target: TransitionTuple) -> None:
        targets = self._transitions.get(domain)
        if targets is None:
            return
        if target in targets:
            targets.remove(target)
        if not targets:
            del self._transitions[domain]

    def get_transitions(self, domain: TransitionTuple) -> Tuple[TransitionTuple, ...]:
        return tuple(self._transitions.get(domain, ()))

    def get_transition(self, domain: TransitionTuple) -> Optional[TransitionTuple]:
        targets = self._transitions.get(domain)
        if not targets:
            return None
        return targets[0]

    def has_transition(self, domain: TransitionTuple, target: TransitionTuple) -> bool:
        return target in self._transitions.get(domain, ())

    def sever(self, state: State) -> int:
        """Drop every transition leaving or entering ``state``; return how many went."""
        removed = 0
        for domain in list(self._transitions):
            targets = self._transitions[domain]
            if domain.state == state:
                removed += len(targets)
                del self._transitions[domain]
                continue
            kept = [target for target in targets if target.state != state]
            removed += len(targets) - len(kept)
            if kept:
                self._transitions[domain] = kept
            else:
                del self._transitions[domain]
        return removed

    def items(self) -> Iterator[Tuple[TransitionTuple, TransitionTuple]]:
        for domain, targets in list(self._transitions.items()):
            for target in list(targets):
                yield domain, target

    def __len__(self) -> int:
        return sum(len(targets) for targets in self._transitions.values())

    def __repr__(self) -> str:
        mode = "deterministic" if self._deterministic else "non-deterministic"
        return f"TransitionFunction({mode}, {len(self)} transitions)"
