from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

from .automata import Automaton, MachineKind
from .states import State
from .transitions import EPSILON, TransitionTuple

LabelSource = Callable[[State, State], List[str]]


def automaton_to_dot(
    machine: Automaton,
    *,
    graph_name: str = "Automaton",
    rankdir: str = "LR",
    labels: Optional[LabelSource] = None,
    epsilon_label: str = "ε",
    blank_label: str = "_",
) -> str:
    """Return a Graphviz DOT view of the machine and its live configuration.

    Edge labels come from ``labels`` (an editor's side-table) when given,
    otherwise they are derived from the transition table.
    """
    with machine.lock:
        states = machine.states
        lines: List[str] = [f'digraph "{_escape(graph_name)}" {{']
        lines.append(f"  rankdir={rankdir};")
        lines.append("  node [shape=circle];")
        lines.append("  __start__ [shape=point];")
        lines.append(f"  __start__ -> {_node(machine.start_state)};")

        for state in states:
            attributes = [f'label="{_escape(state.name)}"']
            attributes.append("shape=doublecircle" if state.accept else "shape=circle")
            if state.current:
                attributes.append("style=filled")
                attributes.append('fillcolor="lightgrey"')
            if state.selected:
                attributes.append('color="blue"')
            lines.append(f"  {_node(state)} [{', '.join(attributes)}];")

        if labels is None:
            grouped = _derived_labels(machine, epsilon_label, blank_label)
        else:
            grouped = {}
            for source in states:
                for dest in states:
                    texts = labels(source, dest)
                    if texts:
                        grouped[(source, dest)] = list(texts)

        for (source, dest), texts in grouped.items():
            label = "\\n".join(_escape(text) for text in texts)
            lines.append(f'  {_node(source)} -> {_node(dest)} [label="{label}"];')

    lines.append("}")
    return "\n".join(lines)


def transition_label(
    machine: Automaton,
    domain: TransitionTuple,
    target: TransitionTuple,
    epsilon_label: str = "ε",
    blank_label: str = "_",
) -> str:
    if machine.kind is MachineKind.TM:
        read = blank_label if domain.letter == EPSILON else domain.letter
        write = blank_label if target.symbol == EPSILON else target.symbol
        return f"{read}->{write},{'R' if target.moves_right else 'L'}"
    return epsilon_label if domain.letter == EPSILON else domain.letter


def _derived_labels(
    machine: Automaton,
    epsilon_label: str,
    blank_label: str,
) -> Dict[Tuple[State, State], List[str]]:
    grouped: Dict[Tuple[State, State], List[str]] = {}
    for domain, target in machine.transition_function.items():
        if domain.state not in machine or target.state not in machine:
            continue
        text = transition_label(machine, domain, target, epsilon_label, blank_label)
        grouped.setdefault((domain.state, target.state), []).append(text)
    if machine.kind is MachineKind.PDA:
        return {pair: ["".join(sorted(texts))] for pair, texts in grouped.items()}
    return grouped


def _node(state: State) -> str:
    return f"s{state.state_id}"


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def write_dot(machine: Automaton, path: str, **kwargs) -> str:
    """Generate a DOT file at `path` and return the path."""
    dot = automaton_to_dot(machine, **kwargs)
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(dot + "\n")
    return path
