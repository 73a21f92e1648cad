from __future__ import annotations

import json
from pathlib import Path

import pytest

from fsm_simulator import cli
from fsm_simulator.automata import MachineKind
from fsm_simulator.cli import build_session_from_payload, normalize_machine_type
from fsm_simulator.errors import AutomatonValidationError
from fsm_simulator.transitions import BLANK, EPSILON, TransitionTuple

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)


@pytest.fixture
def pda_payload():
    return json.loads((EXAMPLES / "astar_bstar.json").read_text(encoding="utf-8"))


@pytest.fixture
def tm_payload():
    return json.loads((EXAMPLES / "unary_increment.json").read_text(encoding="utf-8"))


class TestPayload:
    def test_pushdown_payload(self, pda_payload) -> None:
        session = build_session_from_payload(pda_payload)
        machine = session.machine
        assert session.machine_type == "pda"
        assert machine.kind is MachineKind.PDA
        names = {state.name: state for state in machine.states}
        assert machine.start_state is names["start"]
        assert all(state.accept for state in machine.states)
        assert machine.transition_function.has_transition(
            TransitionTuple.key(names["start"], EPSILON), TransitionTuple.target(names["q1"])
        )
        assert [case.word for case in session.test_cases] == ["aab", "aba", ""]

    def test_turing_payload(self, tm_payload) -> None:
        session = build_session_from_payload(tm_payload)
        machine = session.machine
        assert machine.kind is MachineKind.TM
        assert machine.run.accept.name == "accept"
        assert machine.run.accept.accept
        rule = machine.transition_function.get_transition(
            TransitionTuple.key(machine.start_state, BLANK)
        )
        assert rule.state is machine.run.accept
        assert rule.symbol == "1"

    def test_turing_defaults_add_accept_and_reject(self) -> None:
        session = build_session_from_payload(
            {
                "type": "Turing Machine",
                "states": ["start"],
                "transitions": {"start": {"a": ["accept", "a", "r"]}},
            }
        )
        assert [state.name for state in session.machine.states] == ["start", "accept", "reject"]
        session.start("a")
        session.advance()
        assert session.machine.accepts() is True

    def test_duplicate_pushdown_destinations_are_stored_once(self) -> None:
        session = build_session_from_payload(
            {
                "type": "nfa",
                "states": ["s", "t"],
                "start_state": "s",
                "transitions": {"s": {"a": ["t", "t"]}},
            }
        )
        assert len(session.machine.transition_function) == 1

    @pytest.mark.parametrize(
        "raw, expected",
        [("TM", "tm"), ("turing_machine", "tm"), ("Pushdown Automaton", "pda"), (None, "nfa"), ("nfa", "nfa")],
    )
    def test_machine_type_aliases(self, raw, expected) -> None:
        assert normalize_machine_type(raw) == expected

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError):
            build_session_from_payload({"type": "dfa", "states": ["s"]})

    def test_unknown_start_state(self) -> None:
        with pytest.raises(AutomatonValidationError):
            build_session_from_payload({"type": "pda", "states": ["s"], "start_state": "x"})

    def test_multi_character_letter_rejected(self) -> None:
        with pytest.raises(AutomatonValidationError):
            build_session_from_payload(
                {"type": "pda", "states": ["s"], "start_state": "s", "transitions": {"s": {"ab": ["s"]}}}
            )

    def test_bad_move_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_session_from_payload(
                {"type": "tm", "states": ["start"], "transitions": {"start": {"a": ["accept", "a", "U"]}}}
            )


class TestSession:
    def test_step_size_keeps_previous_value_on_bad_input(self, pda_payload) -> None:
        session = build_session_from_payload(pda_payload)
        assert session.set_step_size("abc") == 1
        assert session.set_step_size("0") == 1
        assert session.set_step_size(" 3 ") == 3
        assert session.set_step_size("-2") == 3
        assert session.step_size == 3

    def test_advance_honours_step_size_and_stops_when_finished(self, pda_payload) -> None:
        session = build_session_from_payload(pda_payload)
        session.set_step_size("2")
        session.start("aab")
        assert session.advance() == 2
        assert session.machine.steps_taken == 2
        assert session.advance() == 1
        assert session.machine.accepts() is True
        assert session.advance() == 0

    def test_status_lines(self, pda_payload, tm_payload) -> None:
        pda = build_session_from_payload(pda_payload)
        assert pda.status_line() == "no computation"
        pda.start("ab")
        pda.advance()
        assert pda.status_line() == "position=a|b current={start,q1} verdict=unknown"

        tm = build_session_from_payload(tm_payload)
        tm.start("11")
        while not tm.machine.is_finished():
            tm.advance()
        assert tm.status_line() == "steps=3 state=accept head=3 tape=111[_] verdict=accepts"

    def test_blank_symbol_in_words(self, tm_payload) -> None:
        session = build_session_from_payload(tm_payload)
        assert session.to_machine_word("1_1") == "1" + BLANK + "1"
        session.start("_")
        assert session.render_tape() == "[_]"


class TestRun:
    def test_trace(self, capsys) -> None:
        code = cli.run(["--config", str(EXAMPLES / "astar_bstar.json"), "--word", "aab"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Type: PDA" in out
        assert "Passed 3 of 3 test cases." in out
        assert "position=aab| current={q1} verdict=accepts" in out

    def test_trace_stops_at_max_steps(self, tmp_path, capsys) -> None:
        config = tmp_path / "loop.json"
        config.write_text(
            json.dumps(
                {"type": "tm", "states": ["start"], "transitions": {"start": {"_": ["start", "_", "R"]}}}
            ),
            encoding="utf-8",
        )
        code = cli.run(["--config", str(config), "--word", "", "--max-steps", "4", "--step-size", "2"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Stopped after 4 steps without a decision." in out

    def test_dot_output(self, tmp_path, capsys) -> None:
        target = tmp_path / "tm.dot"
        code = cli.run(
            ["--config", str(EXAMPLES / "unary_increment.json"), "--word", "1", "--dot", str(target)]
        )
        assert code == 0
        assert "_->1,R" in target.read_text(encoding="utf-8")
        assert "DOT file written" in capsys.readouterr().out

    def test_missing_config_reports_error(self, tmp_path, capsys) -> None:
        code = cli.run(["--config", str(tmp_path / "missing.json")])
        assert code == 1
        assert "Error:" in capsys.readouterr().err

    def test_invalid_json_reports_error(self, tmp_path, capsys) -> None:
        config = tmp_path / "broken.json"
        config.write_text("{not json", encoding="utf-8")
        assert cli.run(["--config", str(config)]) == 1

    def test_interactive_session(self, monkeypatch, capsys) -> None:
        commands = iter(["size x", "word aab", "", "size 5", "step", "restart", "status", "bogus", "quit"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(commands))
        code = cli.run(["--config", str(EXAMPLES / "astar_bstar.json"), "--interactive"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Step size: 1" in out
        assert "Step size: 5" in out
        assert "position=a|ab current={start,q1} verdict=unknown" in out
        assert "position=aab| current={q1} verdict=accepts" in out
        assert "position=|aab current={start,q1} verdict=unknown" in out

    def test_interactive_eof_aborts(self, monkeypatch, capsys) -> None:
        def raise_eof(prompt=""):
            raise EOFError

        monkeypatch.setattr("builtins.input", raise_eof)
        code = cli.run(["--config", str(EXAMPLES / "astar_bstar.json"), "--interactive"])
        assert code == 130

    def test_word_outside_alphabet_reports_error(self, capsys) -> None:
        code = cli.run(["--config", str(EXAMPLES / "astar_bstar.json"), "--word", "a€b"])
        assert code == 1
        assert "outside the 0-255 range" in capsys.readouterr().err

    def test_test_case_outside_alphabet_reports_error(self, tmp_path, capsys) -> None:
        config = tmp_path / "bad_case.json"
        config.write_text(
            json.dumps(
                {
                    "type": "nfa",
                    "states": ["s"],
                    "start_state": "s",
                    "test_cases": [{"input": "€", "expected": False}],
                }
            ),
            encoding="utf-8",
        )
        assert cli.run(["--config", str(config)]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_interactive_bad_word_keeps_prompt(self, monkeypatch, capsys) -> None:
        commands = iter(["word €", "step", "word ab", "quit"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(commands))
        code = cli.run(["--config", str(EXAMPLES / "astar_bstar.json"), "--interactive"])
        out = capsys.readouterr().out
        assert code == 0
        assert "Error: Symbol" in out
        assert "Enter a word first." in out
        assert "position=|ab current={start,q1} verdict=unknown" in out
