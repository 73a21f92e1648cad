"""Keystroke-driven diagram editing.

Transition labels shown on the diagram live in a side-table owned by the
editor, keyed by ``(source id, destination id)``. Every label edit is mirrored
by the matching ``add_transition``/``remove_transition`` call on the machine.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple, Union

from .automata import Automaton, MachineKind
from .states import Position, State
from .transitions import BLANK, EPSILON, EPSILON_CHAR, LEFT, RIGHT, TransitionTuple

logger = logging.getLogger(__name__)

BACKSPACE = "\b"

LabelKey = Tuple[int, int]


def _pair(source: State, dest: State) -> LabelKey:
    return source.state_id, dest.state_id


def is_printable(key: str, upper: int = 256) -> bool:
    if len(key) != 1:
        return False
    code = ord(key)
    return 32 <= code < upper and code != 127


class PushdownTransitionEditor:
    """One label string per state pair; each character is one transition.

    Space stands for epsilon and shows up as ``EPSILON_CHAR``.
    """

    def __init__(self, machine: Automaton) -> None:
        self.machine = machine
        self._labels: Dict[LabelKey, str] = {}

    def key_pressed(self, source: State, dest: State, key: str) -> None:
        with self.machine.lock:
            label = self._labels.get(_pair(source, dest), "")
            if key == BACKSPACE:
                if not label:
                    return
                letter = EPSILON if label[-1] == EPSILON_CHAR else label[-1]
                self.machine.remove_transition(
                    TransitionTuple.key(source, letter), TransitionTuple.target(dest)
                )
                self._store(source, dest, label[:-1])
                return

            if not is_printable(key) or key == EPSILON_CHAR:
                return
            shown, letter = (EPSILON_CHAR, EPSILON) if key == " " else (key, key)
            if shown in label:
                return
            self.machine.add_transition(TransitionTuple.key(source, letter), TransitionTuple.target(dest))
            self._store(source, dest, label + shown)

    def cancel(self) -> None:
        return None

    def transition_strings(self, source: State, dest: State) -> List[str]:
        label = self._labels.get(_pair(source, dest))
        return [label] if label else []

    def forget(self, state: State) -> None:
        for key in [key for key in self._labels if state.state_id in key]:
            del self._labels[key]

    def _store(self, source: State, dest: State, label: str) -> None:
        if label:
            self._labels[_pair(source, dest)] = label
        else:
            self._labels.pop(_pair(source, dest), None)


class TuringTransitionEditor:
    """Three keystrokes (read, write, direction) make one rule, e.g. ``a->b,R``.

    A partial sequence waits in ``buffer``; backspace cancels it, and with an
    empty buffer removes the last rule drawn between the pair.
    """

    def __init__(self, machine: Automaton) -> None:
        self.machine = machine
        self.buffer = ""
        self._labels: Dict[LabelKey, List[str]] = {}

    def key_pressed(self, source: State, dest: State, key: str) -> None:
        with self.machine.lock:
            if key == BACKSPACE:
                if self.buffer:
                    self.buffer = ""
                else:
                    self._pop_last(source, dest)
                return

            if not is_printable(key, upper=127):
                return
            if len(self.buffer) == 2:
                key = key.upper()
                if key not in ("L", "R"):
                    return
            elif key == " ":
                key = EPSILON_CHAR
            self.buffer += key
            if len(self.buffer) == 3:
                label, self.buffer = self.buffer[0] + "->" + self.buffer[1] + "," + self.buffer[2], ""
                self._add_rule(source, dest, label)

    def cancel(self) -> None:
        self.buffer = ""

    def transition_strings(self, source: State, dest: State) -> List[str]:
        return list(self._labels.get(_pair(source, dest), ()))

    def forget(self, state: State) -> None:
        for key in [key for key in self._labels if state.state_id in key]:
            del self._labels[key]

    def _add_rule(self, source: State, dest: State, label: str) -> None:
        read = label[0]
        # one rule per (source, read): drop any older rule and its label
        for (src_id, dst_id), labels in list(self._labels.items()):
            if src_id != source.state_id:
                continue
            stale = [old for old in labels if old[0] == read]
            if not stale:
                continue
            old_dest = self.machine.get_state(dst_id)
            for old in stale:
                labels.remove(old)
                if old_dest is not None:
                    self.machine.remove_transition(*_rule_tuples(source, old_dest, old))
            if not labels:
                del self._labels[(src_id, dst_id)]

        self.machine.add_transition(*_rule_tuples(source, dest, label))
        self._labels.setdefault(_pair(source, dest), []).append(label)

    def _pop_last(self, source: State, dest: State) -> None:
        labels = self._labels.get(_pair(source, dest))
        if not labels:
            return
        last = labels.pop()
        if not labels:
            del self._labels[_pair(source, dest)]
        self.machine.remove_transition(*_rule_tuples(source, dest, last))


def _from_display(char: str) -> str:
    return BLANK if char == EPSILON_CHAR else char


def _rule_tuples(source: State, dest: State, label: str) -> Tuple[TransitionTuple, TransitionTuple]:
    read, write, move = _from_display(label[0]), _from_display(label[3]), label[5]
    direction = RIGHT if move == "R" else LEFT
    return TransitionTuple.key(source, read), TransitionTuple.target(dest, write, direction)


TransitionEditor = Union[PushdownTransitionEditor, TuringTransitionEditor]


def editor_for(machine: Automaton) -> "TransitionEditor":
    if machine.kind is MachineKind.TM:
        return TuringTransitionEditor(machine)
    return PushdownTransitionEditor(machine)


class DiagramEditor:
    """Selection bookkeeping plus keystroke routing for one machine.

    With a selected state and no destination, keystrokes edit the state's
    name; once a destination is picked they feed the transition builder.
    """

    def __init__(self, machine: Automaton) -> None:
        self.machine = machine
        self.transitions = editor_for(machine)
        self.selected: Optional[State] = None
        self.destination: Optional[State] = None

    def add_state(self, name: str, position: Optional[Position] = None, accept: bool = False) -> State:
        state = State(name, accept=accept, position=position)
        self.machine.add_state(state)
        return state

    def select(self, state: Optional[State]) -> None:
        if self.selected is not None:
            self.machine.set_selected(self.selected, False)
        self.selected = state
        self.destination = None
        self.transitions.cancel()
        if state is not None:
            self.machine.set_selected(state, True)

    def set_destination(self, state: Optional[State]) -> None:
        self.destination = state
        self.transitions.cancel()

    def key_pressed(self, key: str) -> None:
        if self.selected is None:
            return
        if self.destination is not None:
            self.transitions.key_pressed(self.selected, self.destination, key)
            return
        name = self.selected.name
        if key == BACKSPACE:
            if name:
                self.machine.set_name(self.selected, name[:-1])
        elif is_printable(key):
            self.machine.set_name(self.selected, name + key)

    def toggle_accept(self) -> None:
        if self.selected is not None:
            self.machine.set_accept(self.selected, not self.selected.accept)

    def delete_selected(self) -> bool:
        state = self.selected
        if state is None or not self.machine.remove_state(state):
            return False
        self.transitions.forget(state)
        self.selected = None
        self.destination = None
        state.selected = False
        return True

    def transition_strings(self, source: State, dest: State) -> List[str]:
        return self.transitions.transition_strings(source, dest)
