"""Running a single exercise and resetting it."""

from __future__ import annotations

import subprocess

from rich.console import Console

from . import ui
from .exercise import Exercise, ExerciseError, Mode
from .verify import VerificationFailed, test


def run(exercise: Exercise, verbose: bool = False) -> None:
    """Build and run one exercise; raise VerificationFailed when it fails."""
    match exercise.mode:
        case Mode.TEST | Mode.BUILD_SCRIPT:
            test(exercise, verbose)
        case Mode.COMPILE | Mode.CLIPPY:
            _compile_and_run(exercise)


def reset(exercise: Exercise) -> subprocess.Popen:
    """Start stashing the exercise's changes with git and return the process."""
    return subprocess.Popen(["git", "stash", "--", str(exercise.path)])


def _compile_and_run(exercise: Exercise) -> None:
    console = Console(stderr=True)
    with console.status(f"Compiling {exercise}...") as status:
        try:
            compiled = exercise.compile()
        except ExerciseError as exc:
            status.stop()
            ui.warn(f"Compilation of {exercise} failed!, Compiler error message:\n")
            print(exc.output.stderr)
            raise VerificationFailed(exercise) from exc
        with compiled:
            status.update(f"Running {exercise}...")
            try:
                output = compiled.run()
            except ExerciseError as exc:
                status.stop()
                print(exc.output.stdout)
                print(exc.output.stderr)
                ui.warn(f"Ran {exercise} with errors")
                raise VerificationFailed(exercise) from exc
    print(output.stdout)
    ui.success(f"Successfully ran {exercise}")