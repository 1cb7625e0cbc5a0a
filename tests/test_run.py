import subprocess
from pathlib import Path

import pytest

from rustdrill.exercise import Exercise, Mode
from rustdrill.run import reset, run
from rustdrill.verify import VerificationFailed

PENDING_SOURCE = "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n"
FINISHED_SOURCE = "fn main() {\n}\n"


class FakeToolchain:
    def __init__(self, build_code=0, build_stderr="", run_code=0, run_stdout="", run_stderr=""):
        self.build_code = build_code
        self.build_stderr = build_stderr
        self.run_code = run_code
        self.run_stdout = run_stdout
        self.run_stderr = run_stderr
        self.calls = []

    def __call__(self, args, **kwargs):
        self.calls.append(list(args))
        if args[0] in ("rustc", "cargo"):
            return subprocess.CompletedProcess(
                args, self.build_code, b"", self.build_stderr.encode()
            )
        return subprocess.CompletedProcess(
            args, self.run_code, self.run_stdout.encode(), self.run_stderr.encode()
        )

    def builds(self):
        return [call for call in self.calls if call[0] in ("rustc", "cargo")]

    def runs(self):
        return [call for call in self.calls if call[0] not in ("rustc", "cargo")]


class PopenRecorder:
    def __init__(self):
        self.args = None

    def __call__(self, args, **kwargs):
        self.args = list(args)
        return self


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("NO_EMOJI", raising=False)
    monkeypatch.delenv("FORCE_COLOR", raising=False)
    return tmp_path


def install(monkeypatch, **kwargs):
    fake = FakeToolchain(**kwargs)
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


def make_exercise(root: Path, name, source, mode=Mode.COMPILE, hint=""):
    path = root / f"{name}.rs"
    path.write_text(source, encoding="utf-8")
    return Exercise(name=name, path=path, mode=mode, hint=hint)


def test_compile_success_prints_output(workspace, monkeypatch, capsys):
    fake = install(monkeypatch, run_stdout="program says hi")
    exercise = make_exercise(workspace, "compSuccess", FINISHED_SOURCE)
    assert run(exercise) is None
    out = capsys.readouterr().out
    assert "program says hi" in out
    assert f"Successfully ran {exercise.path}" in out
    build = fake.builds()[0]
    assert fake.runs() == [[build[3]]]


def test_compile_failure_raises(workspace, monkeypatch, capsys):
    install(monkeypatch, build_code=1, build_stderr="error: expected pattern")
    exercise = make_exercise(workspace, "compFailure", "fn main() {\n    let\n}\n")
    with pytest.raises(VerificationFailed) as info:
        run(exercise)
    assert info.value.exercise is exercise
    out = capsys.readouterr().out
    assert f"Compilation of {exercise.path} failed!, Compiler error message:" in out
    assert "error: expected pattern" in out


def test_run_failure_raises(workspace, monkeypatch, capsys):
    install(monkeypatch, run_code=101, run_stdout="partial", run_stderr="panicked")
    exercise = make_exercise(workspace, "crash", FINISHED_SOURCE)
    with pytest.raises(VerificationFailed):
        run(exercise)
    out = capsys.readouterr().out
    assert "partial" in out
    assert "panicked" in out
    assert f"Ran {exercise.path} with errors" in out


def test_test_success_with_output(workspace, monkeypatch, capsys):
    install(monkeypatch, run_stdout="THIS TEST TOO SHALL PASS")
    exercise = make_exercise(workspace, "testSuccess", FINISHED_SOURCE, mode=Mode.TEST)
    run(exercise, verbose=True)
    assert "THIS TEST TOO SHALL PASS" in capsys.readouterr().out


def test_test_success_without_output(workspace, monkeypatch, capsys):
    install(monkeypatch, run_stdout="THIS TEST TOO SHALL PASS")
    exercise = make_exercise(workspace, "testSuccess", FINISHED_SOURCE, mode=Mode.TEST)
    run(exercise, verbose=False)
    assert "THIS TEST TOO SHALL PASS" not in capsys.readouterr().out


def test_test_not_passed_raises(workspace, monkeypatch):
    install(monkeypatch, run_code=101)
    exercise = make_exercise(workspace, "testNotPassed", FINISHED_SOURCE, mode=Mode.TEST)
    with pytest.raises(VerificationFailed) as info:
        run(exercise)
    assert info.value.exercise is exercise


def test_compile_exercise_does_not_prompt(workspace, monkeypatch, capsys):
    install(monkeypatch)
    exercise = make_exercise(workspace, "pending_exercise", PENDING_SOURCE)
    run(exercise)
    assert "I AM NOT DONE" not in capsys.readouterr().out


def test_test_exercise_does_not_prompt(workspace, monkeypatch, capsys):
    install(monkeypatch)
    exercise = make_exercise(
        workspace, "pending_test_exercise", PENDING_SOURCE, mode=Mode.TEST
    )
    run(exercise)
    assert "I AM NOT DONE" not in capsys.readouterr().out


def test_clippy_exercise_is_compiled_and_run(workspace, monkeypatch, capsys):
    (workspace / "exercises" / "clippy").mkdir(parents=True)
    fake = install(monkeypatch, run_stdout="clippy binary output")
    exercise = make_exercise(workspace, "clippy1", FINISHED_SOURCE, mode=Mode.CLIPPY)
    assert run(exercise) is None
    assert [call[0] for call in fake.builds()] == ["rustc", "cargo", "cargo"]
    assert len(fake.runs()) == 1
    out = capsys.readouterr().out
    assert "clippy binary output" in out
    assert f"Successfully ran {exercise.path}" in out


def test_reset_stashes_exercise(workspace, monkeypatch):
    recorder = PopenRecorder()
    monkeypatch.setattr(subprocess, "Popen", recorder)
    exercise = make_exercise(workspace, "intro1", FINISHED_SOURCE)
    process = reset(exercise)
    assert process is recorder
    assert recorder.args == ["git", "stash", "--", str(exercise.path)]


def test_reset_raises_when_git_cannot_start(workspace, monkeypatch):
    def missing(args, **kwargs):
        raise FileNotFoundError(args[0])

    monkeypatch.setattr(subprocess, "Popen", missing)
    exercise = make_exercise(workspace, "intro1", FINISHED_SOURCE)
    with pytest.raises(FileNotFoundError):
        reset(exercise)