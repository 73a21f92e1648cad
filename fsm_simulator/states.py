from __future__ import annotations

import itertools
from typing import Optional, Tuple

Position = Tuple[int, int]

_ids = itertools.count()


class State:
    """A machine state.

    Identity is the creation id; names and positions are display data only,
    so renaming or moving a state never changes transition-table membership.
    """

    __slots__ = ("_state_id", "name", "accept", "current", "selected", "position")

    def __init__(
        self,
        name: str,
        accept: bool = False,
        position: Optional[Position] = None,
    ) -> None:
        self._state_id = next(_ids)
        self.name = name
        self.accept = accept
        self.current = False
        self.selected = False
        self.position = position

    @property
    def state_id(self) -> int:
        return self._state_id

    def __hash__(self) -> int:
        return self._state_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, State):
            return NotImplemented
        return self._state_id == other._state_id

    def __repr__(self) -> str:
        flags = "".join(
            flag
            for flag, on in (("A", self.accept), ("C", self.current), ("S", self.selected))
            if on
        )
        return f"State({self.name!r}, id={self._state_id}{', ' + flags if flags else ''})"
