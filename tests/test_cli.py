import subprocess
from pathlib import Path
from unittest import mock

import pytest

from rustdrill.cli import build_parser, find_exercise, list_exercises, main, rustc_exists
from rustdrill.exercise import Exercise, Mode

PENDING_SOURCE = "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n"
FINISHED_SOURCE = "// fake_exercise\n\nfn main() {\n\n}\n"


def _info(entries):
    blocks = []
    for name, path, mode, hint in entries:
        blocks.append(
            f'[[exercises]]\nname = "{name}"\npath = "{path}"\nmode = "{mode}"\nhint = """{hint}"""\n'
        )
    return "\n".join(blocks)


@pytest.fixture
def rustc_ok():
    with mock.patch(
        "subprocess.run", return_value=subprocess.CompletedProcess(["rustc"], 0)
    ) as patched:
        yield patched


@pytest.fixture
def state_dir(tmp_path, monkeypatch):
    (tmp_path / "pending_exercise.rs").write_text(PENDING_SOURCE)
    (tmp_path / "finished_exercise.rs").write_text(FINISHED_SOURCE)
    (tmp_path / "info.toml").write_text(
        _info(
            [
                ("pending_exercise", "pending_exercise.rs", "compile", ""),
                ("finished_exercise", "finished_exercise.rs", "compile", ""),
            ]
        )
    )
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def failure_dir(tmp_path, monkeypatch):
    (tmp_path / "testFailure.rs").write_text("#[test]\nfn passing() {\n    asset!(true);\n}\n")
    (tmp_path / "info.toml").write_text(
        _info([("testFailure", "testFailure.rs", "test", "Hello!")])
    )
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def success_dir(tmp_path, monkeypatch):
    (tmp_path / "compSuccess.rs").write_text("fn main() {\n}\n")
    (tmp_path / "testSuccess.rs").write_text("#[test]\nfn passing() {}\n")
    (tmp_path / "info.toml").write_text(
        _info(
            [
                ("compSuccess", "compSuccess.rs", "compile", ""),
                ("testSuccess", "testSuccess.rs", "test", ""),
            ]
        )
    )
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_version(capsys):
    assert main(["--version"]) == 0
    assert capsys.readouterr().out == "v5.5.1\n"


def test_runs_without_arguments(state_dir, rustc_ok, capsys):
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "welcome to" in out
    assert "Thanks for installing rustdrill!" in out


def test_fails_when_in_wrong_dir(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main([]) == 1
    assert "must be run from the exercises directory" in capsys.readouterr().out


def test_fails_without_rustc(state_dir, capsys):
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("rustc")):
        assert main(["list"]) == 1
    assert "We cannot find `rustc`." in capsys.readouterr().out


def test_rustc_exists_false_when_missing():
    with mock.patch("subprocess.run", side_effect=FileNotFoundError("rustc")):
        assert rustc_exists() is False


def test_rustc_exists_false_on_failure_status():
    with mock.patch(
        "subprocess.run", return_value=subprocess.CompletedProcess(["rustc"], 1)
    ):
        assert rustc_exists() is False


def test_rustc_exists_true_on_success(rustc_ok):
    assert rustc_exists() is True


def test_run_single_test_no_filename(state_dir):
    with pytest.raises(SystemExit) as info:
        main(["run"])
    assert info.value.code == 1


def test_reset_no_exercise(state_dir, capsys):
    with pytest.raises(SystemExit) as info:
        main(["reset"])
    assert info.value.code == 1
    assert "positional arguments not provided" in capsys.readouterr().err


def test_run_single_test_no_exercise(failure_dir, rustc_ok, capsys):
    assert main(["run", "compNoExercise.rs"]) == 1
    assert "No exercise found for 'compNoExercise.rs'!" in capsys.readouterr().out


def test_get_hint_for_single_test(failure_dir, rustc_ok, capsys):
    assert main(["hint", "testFailure"]) == 0
    assert capsys.readouterr().out == "Hello!\n"


def test_run_rustlings_list_no_pending(success_dir, rustc_ok, capsys):
    assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert "Pending" not in out
    assert "compSuccess" in out


def test_run_rustlings_list_both_done_and_pending(state_dir, rustc_ok, capsys):
    assert main(["list"]) == 0
    out = capsys.readouterr().out
    assert "Done" in out
    assert "Pending" in out
    assert "Progress: You completed 1 / 2 exercises (50.0 %)." in out


def test_run_rustlings_list_without_pending(state_dir, rustc_ok, capsys):
    assert main(["list", "--solved"]) == 0
    assert "Pending" not in capsys.readouterr().out


def test_run_rustlings_list_without_done(state_dir, rustc_ok, capsys):
    assert main(["list", "--unsolved"]) == 0
    assert "Done" not in capsys.readouterr().out


def _exercises(root: Path):
    return [
        Exercise("pending_exercise", root / "pending_exercise.rs", Mode.COMPILE, "p"),
        Exercise("finished_exercise", root / "finished_exercise.rs", Mode.COMPILE, "f"),
    ]


def test_find_exercise_by_name(state_dir):
    exercises = _exercises(state_dir)
    assert find_exercise("finished_exercise", exercises).hint == "f"


def test_find_exercise_next_returns_first_pending(state_dir):
    exercises = list(reversed(_exercises(state_dir)))
    assert find_exercise("next", exercises).name == "pending_exercise"


def test_find_exercise_next_when_all_done(state_dir):
    exercises = [e for e in _exercises(state_dir) if e.name == "finished_exercise"]
    with pytest.raises(LookupError, match="Congratulations"):
        find_exercise("next", exercises)


def test_find_exercise_unknown(state_dir):
    with pytest.raises(LookupError, match="No exercise found for 'nope'!"):
        find_exercise("nope", _exercises(state_dir))


def test_list_names_only(state_dir):
    lines = list_exercises(_exercises(state_dir), names=True)
    assert lines[:2] == ["pending_exercise", "finished_exercise"]
    assert lines[-1] == "Progress: You completed 1 / 2 exercises (50.0 %)."


def test_list_paths_only(state_dir):
    lines = list_exercises(_exercises(state_dir), paths=True)
    assert lines[0] == str(state_dir / "pending_exercise.rs")


def test_list_header_and_row_format(state_dir):
    lines = list_exercises(_exercises(state_dir))
    assert lines[0] == f"{'Name':<17}\t{'Path':<46}\t{'Status':<7}"
    fname = str(state_dir / "finished_exercise.rs")
    assert lines[2] == f"{'finished_exercise':<17}\t{fname:<46}\t{'Done':<7}"


def test_list_filter_is_case_insensitive_and_comma_separated(state_dir):
    lines = list_exercises(_exercises(state_dir), names=True, pattern="FINISHED, ,zzz")
    assert lines[:-1] == ["finished_exercise"]


def test_list_empty_filter_shows_nothing(state_dir):
    lines = list_exercises(_exercises(state_dir), names=True, pattern="")
    assert lines == ["Progress: You completed 1 / 2 exercises (50.0 %)."]


def test_parser_watch_success_hints():
    args = build_parser().parse_args(["--nocapture", "watch", "--success-hints"])
    assert (args.command, args.success_hints, args.nocapture) == ("watch", True, True)


def test_parser_list_short_options():
    args = build_parser().parse_args(["list", "-p", "-f", "if", "-u"])
    assert (args.paths, args.filter, args.unsolved, args.solved) == (True, "if", True, False)