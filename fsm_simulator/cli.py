from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .analysis import DEFAULT_MAX_STEPS, TestCase, run_test_cases, summarize_results
from .automata import Automaton, AutomatonError, AutomatonValidationError, MachineKind
from .graphviz import transition_label, write_dot
from .logconfig import configure_logging
from .states import State
from .transitions import BLANK, EPSILON, LEFT, RIGHT, TransitionTuple, check_symbol

logger = logging.getLogger(__name__)

EMPTY_INPUT_LABEL = "<empty>"
DEFAULT_EPSILON_SYMBOL = "epsilon"
DEFAULT_BLANK_SYMBOL = "_"

MACHINE_ALIASES = {
    "tm": "tm",
    "turingmachine": "tm",
    "pda": "pda",
    "pushdownautomaton": "pda",
    "nfa": "nfa",
    "finiteautomaton": "nfa",
    "": "nfa",
}


@dataclass
class Session:
    machine: Automaton
    machine_type: str
    test_cases: List[TestCase] = field(default_factory=list)
    step_size: int = 1
    epsilon_symbol: str = DEFAULT_EPSILON_SYMBOL
    blank_symbol: str = DEFAULT_BLANK_SYMBOL

    def set_step_size(self, raw: str) -> int:
        """Accept a positive integer step size; anything else keeps the old one."""
        try:
            size = int(str(raw).strip())
        except ValueError:
            logger.warning("ignoring non-numeric step size %r", raw)
            return self.step_size
        if size < 1:
            logger.warning("ignoring step size %d; it must be at least 1", size)
            return self.step_size
        self.step_size = size
        return self.step_size

    def start(self, word: str) -> None:
        self.machine.start_computation(self.to_machine_word(word))

    def advance(self) -> int:
        """Step up to ``step_size`` times, stopping early once the machine decides."""
        taken = 0
        while taken < self.step_size and not self.machine.is_finished():
            self.machine.step()
            taken += 1
        return taken

    def to_machine_word(self, word: str) -> str:
        if self.machine.kind is MachineKind.TM:
            return word.replace(self.blank_symbol, BLANK)
        return word

    def verdict_text(self) -> str:
        answer = self.machine.accepts()
        if answer is None:
            return "unknown"
        return "accepts" if answer else "rejects"

    def status_line(self) -> str:
        machine = self.machine
        with machine.lock:
            if machine.word is None:
                return "no computation"
            if machine.kind is MachineKind.TM:
                run = machine.run
                current = run.current.name if run.current is not None else "-"
                return (
                    f"steps={machine.steps_taken} state={current} head={run.head} "
                    f"tape={self.render_tape()} verdict={self.verdict_text()}"
                )
            word = machine.word
            pointer = f"{word[:machine.steps_taken]}|{word[machine.steps_taken:]}"
            current = ",".join(state.name for state in machine.current_states) or "-"
            return f"position={pointer} current={{{current}}} verdict={self.verdict_text()}"

    def render_tape(self) -> str:
        run = self.machine.run
        cells = [self.blank_symbol if cell == BLANK else cell for cell in run.tape]
        if run.head == len(cells):
            cells.append(self.blank_symbol)
        cells[run.head] = f"[{cells[run.head]}]"
        return "".join(cells)


def load_payload_from_text(text: str) -> Dict[str, Any]:
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise ValueError("Config must define a JSON object.")
    return payload


def normalize_machine_type(raw: Any) -> str:
    key = str(raw or "").lower().replace(" ", "").replace("_", "").replace("-", "")
    try:
        return MACHINE_ALIASES[key]
    except KeyError:
        raise ValueError("Config field 'type' must be one of 'nfa', 'pda' or 'tm'.") from None


def build_session_from_payload(payload: Mapping[str, Any]) -> Session:
    if not isinstance(payload, Mapping):
        raise ValueError("Config payload must be a mapping.")
    data = dict(payload)

    machine_type = normalize_machine_type(data.get("type"))
    names = _require_string_sequence(data, "states")
    if len(set(names)) != len(names):
        raise AutomatonValidationError("State names must be unique.")
    start_name = _optional_string(data, "start_state", "start")

    transitions_obj = data.get("transitions", {})
    if not isinstance(transitions_obj, dict):
        raise ValueError("Config field 'transitions' must be an object.")

    epsilon_symbol = _optional_string(data, "epsilon_symbol", DEFAULT_EPSILON_SYMBOL)
    blank_symbol = _optional_string(data, "blank_symbol", DEFAULT_BLANK_SYMBOL)

    if machine_type == "tm":
        accept_name = _optional_string(data, "accept_state", "accept")
        reject_name = _optional_string(data, "reject_state", "reject")
        if accept_name == reject_name:
            raise AutomatonValidationError("Accept and reject states must differ.")
        for extra in (accept_name, reject_name):
            if extra not in names:
                names.append(extra)
        states = _make_states(names, {accept_name})
        start = _lookup(states, start_name, "start_state")
        machine = Automaton.turing(
            states.values(), start, states[accept_name], states[reject_name]
        )
        _load_tape_transitions(machine, states, transitions_obj, blank_symbol)
    else:
        accept_names = data.get("accept_states", [])
        if not isinstance(accept_names, list) or not all(isinstance(n, str) for n in accept_names):
            raise ValueError("Config field 'accept_states' must be a list of strings.")
        states = _make_states(names, set(accept_names))
        for name in accept_names:
            _lookup(states, name, "accept_states")
        start = _lookup(states, start_name, "start_state")
        machine = Automaton.pushdown(states.values(), start)
        _load_letter_transitions(machine, states, transitions_obj, epsilon_symbol)

    test_cases = _load_test_cases_from_payload(data.get("test_cases"))
    session = Session(
        machine=machine,
        machine_type=machine_type,
        test_cases=test_cases,
        epsilon_symbol=epsilon_symbol,
        blank_symbol=blank_symbol,
    )
    if "step_size" in data:
        session.set_step_size(str(data["step_size"]))
    return session


def _make_states(names: Sequence[str], accepting: set) -> Dict[str, State]:
    return {name: State(name, accept=name in accepting) for name in names}


def _lookup(states: Mapping[str, State], name: str, field_name: str) -> State:
    try:
        return states[name]
    except KeyError:
        raise AutomatonValidationError(
            f"Config field '{field_name}' names unknown state '{name}'."
        ) from None


def _load_letter_transitions(
    machine: Automaton,
    states: Mapping[str, State],
    transitions: Mapping[str, Any],
    epsilon_symbol: str,
) -> None:
    for source_name, mapping in transitions.items():
        source = _lookup(states, source_name, "transitions")
        if not isinstance(mapping, dict):
            raise ValueError("Transition entries must be objects.")
        for letter, destinations in mapping.items():
            letter = EPSILON if letter == epsilon_symbol else check_symbol(letter)
            if destinations is None:
                continue
            if isinstance(destinations, str):
                destinations = [destinations]
            if not isinstance(destinations, list) or not all(isinstance(d, str) for d in destinations):
                raise ValueError("Transition destinations must be strings or lists of strings.")
            domain = TransitionTuple.key(source, letter)
            for dest_name in destinations:
                target = TransitionTuple.target(_lookup(states, dest_name, "transitions"))
                if not machine.transition_function.has_transition(domain, target):
                    machine.add_transition(domain, target)


def _load_tape_transitions(
    machine: Automaton,
    states: Mapping[str, State],
    transitions: Mapping[str, Any],
    blank_symbol: str,
) -> None:
    def tape_symbol(raw: Any) -> str:
        if raw == blank_symbol:
            return BLANK
        return check_symbol(raw)

    for source_name, mapping in transitions.items():
        source = _lookup(states, source_name, "transitions")
        if not isinstance(mapping, dict):
            raise ValueError("Transition entries must be objects.")
        for read, rule in mapping.items():
            dest_name, write, move = _unpack_rule(source_name, read, rule)
            machine.add_transition(
                TransitionTuple.key(source, tape_symbol(read)),
                TransitionTuple.target(
                    _lookup(states, dest_name, "transitions"),
                    tape_symbol(write),
                    _parse_move(move),
                ),
            )


def _unpack_rule(source_name: str, read: str, rule: Any) -> Tuple[str, str, str]:
    if isinstance(rule, dict):
        values = (rule.get("to"), rule.get("write"), rule.get("move"))
    elif isinstance(rule, list) and len(rule) == 3:
        values = tuple(rule)
    else:
        values = (None, None, None)
    if not all(isinstance(value, str) for value in values):
        raise ValueError(
            f"Rule for state '{source_name}' reading '{read}' needs 'to', 'write' and 'move' strings."
        )
    return values  # type: ignore[return-value]


def _parse_move(move: str) -> bool:
    move = move.strip().upper()
    if move == "R":
        return RIGHT
    if move == "L":
        return LEFT
    raise ValueError(f"Head moves must be 'L' or 'R', got {move!r}.")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Step through NFA, PDA and Turing machine computations."
    )
    parser.add_argument("--config", required=True, help="Path to a JSON file that describes the machine.")
    parser.add_argument("--word", help="Input word to run.")
    parser.add_argument(
        "--tests",
        help="Optional JSON file containing additional test cases to execute.",
    )
    parser.add_argument(
        "--step-size",
        default="1",
        help="Number of machine steps per tick.",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=DEFAULT_MAX_STEPS,
        help="Give up on a computation after this many steps.",
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Drive the computation from a prompt instead of tracing it.",
    )
    parser.add_argument("--dot", help="Write a Graphviz DOT view of the final configuration here.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING).")
    return parser.parse_args(argv)


def run(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(args.log_level)
    try:
        session = _build_from_config(Path(args.config))
        if args.tests:
            session.test_cases.extend(_load_test_cases_from_file(Path(args.tests)))
    except (
        AutomatonValidationError,
        AutomatonError,
        ValueError,
        FileNotFoundError,
        json.JSONDecodeError,
    ) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    session.set_step_size(args.step_size)
    _display_summary(session)

    try:
        _run_tests(session, args.max_steps)
        if args.interactive:
            _interactive_loop(session, args.word)
        elif args.word is not None:
            _trace(session, args.word, args.max_steps)
    except AutomatonError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nAborted by user.", file=sys.stderr)
        return 130

    if args.dot:
        path = write_dot(
            session.machine,
            args.dot,
            epsilon_label=session.epsilon_symbol,
            blank_label=session.blank_symbol,
        )
        print(f"\nDOT file written: {Path(path).resolve()}")
    return 0


def _build_from_config(path: Path) -> Session:
    with open(path, "r", encoding="utf-8") as handle:
        payload = load_payload_from_text(handle.read())
    return build_session_from_payload(payload)


def _display_summary(session: Session) -> None:
    machine = session.machine
    print("Machine Summary")
    print(f"  Type: {session.machine_type.upper()}")
    print(f"  States: {', '.join(state.name for state in machine.states)}")
    print(f"  Start state: {machine.start_state.name}")
    if machine.kind is MachineKind.TM:
        print(f"  Accept state: {machine.run.accept.name}")
        print(f"  Reject state: {machine.run.reject.name}")
    else:
        accepting = [state.name for state in machine.states if state.accept]
        print(f"  Accept states: {', '.join(accepting) if accepting else '<none>'}")
    print("  Transition function:")
    rows = [
        f"    {domain.state.name}: "
        f"{transition_label(machine, domain, target, session.epsilon_symbol, session.blank_symbol)}"
        f" => {target.state.name}"
        for domain, target in machine.transition_function.items()
    ]
    for row in rows or ["    <none>"]:
        print(row)


def _run_tests(session: Session, max_steps: int):
    if not session.test_cases:
        return []
    print("\nRunning test cases...")
    cases = [
        TestCase(word=session.to_machine_word(case.word), expected=case.expected, label=case.label)
        for case in session.test_cases
    ]
    results = run_test_cases(session.machine, cases, max_steps)
    summary = summarize_results(results)
    print(f"  Passed {summary['passed']} of {summary['total']} test cases.")
    for original, result in zip(session.test_cases, results):
        word_text = original.word or EMPTY_INPUT_LABEL
        expected_text = "accept" if result.case.expected else "reject"
        if result.actual is None:
            actual_text = f"no decision after {max_steps} steps"
        else:
            actual_text = "accept" if result.actual else "reject"
        status = "PASS" if result.passed else "FAIL"
        label_prefix = f"{result.case.label}: " if result.case.label else ""
        print(f"    [{status}] {label_prefix}{word_text} -> expected {expected_text}, got {actual_text}")
    return results


def _trace(session: Session, word: str, max_steps: int) -> None:
    print(f"\nTracing {word or EMPTY_INPUT_LABEL} (step size {session.step_size})")
    session.start(word)
    print(f"  {session.status_line()}")
    while not session.machine.is_finished() and session.machine.steps_taken < max_steps:
        session.advance()
        print(f"  {session.status_line()}")
    if not session.machine.is_finished():
        print(f"  Stopped after {max_steps} steps without a decision.")


INTERACTIVE_HELP = (
    "Commands: [Enter]/step, restart, word <w>, size <n>, status, help, quit"
)


def _interactive_loop(session: Session, word: Optional[str]) -> None:
    print(f"\n{INTERACTIVE_HELP}")
    if word is not None:
        _start_word(session, word)
    while True:
        raw = _safe_input("> ").strip()
        command, _, argument = raw.partition(" ")
        command = command.lower()
        if command in {"quit", "q", "exit"}:
            return
        if command in {"", "step", "s"}:
            if session.machine.word is None:
                print("  Enter a word first.")
                continue
            session.advance()
        elif command in {"restart", "r"}:
            session.machine.restart_computation()
        elif command in {"word", "w"}:
            _start_word(session, argument)
            continue
        elif command == "size":
            print(f"  Step size: {session.set_step_size(argument)}")
            continue
        elif command == "status":
            pass
        else:
            print(f"  {INTERACTIVE_HELP}")
            continue
        print(f"  {session.status_line()}")


def _start_word(session: Session, word: str) -> None:
    try:
        session.start(word)
    except AutomatonError as exc:
        print(f"  Error: {exc}")
        return
    print(f"  {session.status_line()}")


def _safe_input(prompt_text: str) -> str:
    try:
        return input(prompt_text)
    except EOFError as exc:
        raise KeyboardInterrupt from exc


def _require_string_sequence(payload: Dict[str, Any], key: str) -> List[str]:
    value = payload.get(key)
    if not isinstance(value, list) or not value or not all(isinstance(item, str) for item in value):
        raise ValueError(f"Config field '{key}' must be a non-empty list of strings.")
    return list(value)


def _optional_string(payload: Dict[str, Any], key: str, default: str) -> str:
    value = payload.get(key, default)
    if not isinstance(value, str) or not value:
        raise ValueError(f"Config field '{key}' must be a non-empty string.")
    return value


def _load_test_cases_from_file(path: Path) -> List[TestCase]:
    with open(path, "r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return _load_test_cases_from_payload(payload)


def _load_test_cases_from_payload(data: Any) -> List[TestCase]:
    if data is None:
        return []
    if isinstance(data, dict):
        entries = data.get("cases", [])
    else:
        entries = data
    if not isinstance(entries, list):
        raise ValueError("Test cases must be provided as a list.")
    cases: List[TestCase] = []
    for index, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ValueError("Each test case must be an object with 'input' and 'expected'.")
        word = entry.get("input", "")
        if not isinstance(word, str):
            raise ValueError("Test case 'input' must be a string.")
        expected = bool(entry.get("expected", False))
        label = entry.get("label") or f"case {index}"
        cases.append(TestCase(word=word, expected=expected, label=label))
    return cases
