"""Exercises: loading, compiling, running and completion state."""

from __future__ import annotations

import enum
import os
import re
import subprocess
import threading
import tomllib
import weakref
from dataclasses import dataclass
from pathlib import Path

from . import ui

RUSTC_COLOR_ARGS = ("--color", "always")
RUSTC_EDITION_ARGS = ("--edition", "2021")
I_AM_DONE_REGEX = re.compile(r"^\s*///?\s*I\s+AM\s+NOT\s+DONE", re.MULTILINE)
CONTEXT = 2
CLIPPY_CARGO_TOML_PATH = "./exercises/clippy/Cargo.toml"
BUILD_SCRIPT_CARGO_TOML_PATH = "./exercises/tests/Cargo.toml"


class Mode(enum.Enum):
    """How an exercise is checked."""

    COMPILE = "compile"
    TEST = "test"
    CLIPPY = "clippy"
    BUILD_SCRIPT = "buildscript"


@dataclass(frozen=True)
class ContextLine:
    """One source line shown around a pending marker."""

    line: str
    number: int
    important: bool


@dataclass(frozen=True)
class Done:
    """The exercise no longer carries the pending marker."""


@dataclass(frozen=True)
class Pending:
    """The exercise still carries the marker; holds the lines around it."""

    context: tuple[ContextLine, ...]


@dataclass(frozen=True)
class ExerciseOutput:
    """Captured output of a compiler or exercise process."""

    stdout: str
    stderr: str


class ExerciseError(Exception):
    """Compiling or running an exercise failed."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__(output.stderr or output.stdout)
        self.output = output


def _temp_file() -> Path:
    return Path.cwd() / f"temp_{os.getpid()}_{threading.get_ident()}"


def _remove(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


def _execute(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(args, capture_output=True)


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


def _output_of(proc: subprocess.CompletedProcess) -> ExerciseOutput:
    return ExerciseOutput(stdout=_decode(proc.stdout), stderr=_decode(proc.stderr))


def _split_lines(source: str) -> list[str]:
    lines = source.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


def _write_manifest(path: str, name: str) -> None:
    manifest = (
        "[package]\n"
        f'name = "{name}"\n'
        'version = "0.0.1"\n'
        'edition = "2021"\n'
        "[[bin]]\n"
        f'name = "{name}"\n'
        f'path = "{name}.rs"'
    )
    if ui.no_emoji():
        message = "Failed to write Clippy Cargo.toml file."
    else:
        message = "Failed to write 📎 Clippy 📎 Cargo.toml file."
    try:
        Path(path).write_text(manifest, encoding="utf-8")
    except OSError as exc:
        raise OSError(message) from exc


@dataclass(frozen=True)
class Exercise:
    """An exercise as described in info.toml."""

    name: str
    path: Path
    mode: Mode
    hint: str

    def __str__(self) -> str:
        return str(self.path)

    def compile(self) -> CompiledExercise:
        """Build the exercise; raise ExerciseError with the output on failure."""
        binary = _temp_file()
        source = str(self.path)
        rustc = ["rustc", source, "-o", str(binary), *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS]
        match self.mode:
            case Mode.COMPILE:
                proc = _execute(rustc)
            case Mode.TEST:
                proc = _execute(
                    ["rustc", "--test", source, "-o", str(binary),
                     *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS]
                )
            case Mode.CLIPPY:
                _write_manifest(CLIPPY_CARGO_TOML_PATH, self.name)
                # Build a runnable binary too; clippy reports any compile failure.
                _execute(rustc)
                _execute(["cargo", "clean", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                          *RUSTC_COLOR_ARGS])
                proc = _execute(
                    ["cargo", "clippy", "--manifest-path", CLIPPY_CARGO_TOML_PATH,
                     *RUSTC_COLOR_ARGS, "--", "-D", "warnings", "-D", "clippy::float_cmp"]
                )
            case Mode.BUILD_SCRIPT:
                _write_manifest(BUILD_SCRIPT_CARGO_TOML_PATH, self.name)
                proc = _execute(
                    ["cargo", "test", "--manifest-path", BUILD_SCRIPT_CARGO_TOML_PATH]
                )
        if proc.returncode == 0:
            return CompiledExercise(self, binary)
        _remove(binary)
        raise ExerciseError(_output_of(proc))

    def state(self) -> Done | Pending:
        """Return Done, or Pending with the lines around the marker."""
        source = self.path.read_text(encoding="utf-8", errors="replace")
        if not I_AM_DONE_REGEX.search(source):
            return Done()
        lines = _split_lines(source)
        matched = next(
            (index for index, line in enumerate(lines) if I_AM_DONE_REGEX.search(line)),
            None,
        )
        if matched is None:
            raise RuntimeError(f"pending marker in {self.path} spans several lines")
        first = max(matched - CONTEXT, 0)
        return Pending(
            tuple(
                ContextLine(line=line, number=index + 1, important=index == matched)
                for index, line in enumerate(lines[first : matched + CONTEXT + 1], start=first)
            )
        )

    def looks_done(self) -> bool:
        """Whether the pending marker has been removed."""
        return isinstance(self.state(), Done)


class CompiledExercise:
    """A built exercise; its binary is removed on close."""

    def __init__(self, exercise: Exercise, binary: Path) -> None:
        self.exercise = exercise
        self.binary = binary
        self._finalizer = weakref.finalize(self, _remove, binary)

    def run(self) -> ExerciseOutput:
        """Run the built binary; raise ExerciseError when it fails."""
        if self.exercise.mode is Mode.BUILD_SCRIPT:
            return ExerciseOutput(stdout="", stderr="")
        args = [str(self.binary)]
        if self.exercise.mode is Mode.TEST:
            args.append("--show-output")
        proc = _execute(args)
        output = _output_of(proc)
        if proc.returncode != 0:
            raise ExerciseError(output)
        return output

    def close(self) -> None:
        """Remove the built binary."""
        self._finalizer()

    def __enter__(self) -> CompiledExercise:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def load_exercises(path: str | os.PathLike = "info.toml") -> list[Exercise]:
    """Read the exercise list from an info.toml file."""
    with open(path, "rb") as handle:
        data = tomllib.load(handle)
    try:
        return [
            Exercise(
                name=entry["name"],
                path=Path(entry["path"]),
                mode=Mode(entry["mode"]),
                hint=entry["hint"],
            )
            for entry in data["exercises"]
        ]
    except KeyError as exc:
        raise ValueError(f"missing field {exc} in {path}") from exc