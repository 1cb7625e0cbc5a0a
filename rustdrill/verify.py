"""Checking exercises one after another, with progress reporting."""

from __future__ import annotations

import enum
import math
from collections.abc import Iterable

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn
from rich.text import Text

from . import ui
from .exercise import CompiledExercise, Exercise, ExerciseError, Mode, Pending

_SEPARATOR = "===================="


class VerificationFailed(Exception):
    """An exercise did not compile, failed, or is still marked as pending."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"{exercise} did not pass")
        self.exercise = exercise


class _RunMode(enum.Enum):
    INTERACTIVE = enum.auto()
    NON_INTERACTIVE = enum.auto()


class _Spinner:
    """A transient activity line, either standalone or inside a progress display."""

    def __init__(self, message: str, progress: Progress | None = None) -> None:
        self._progress = progress
        self._active = True
        self._task: TaskID | None = None
        self._status = None
        if progress is None:
            self._status = Console(stderr=True).status(message)
            self._status.start()
        else:
            self._task = progress.add_task(message, total=None, label="", counter="")

    def update(self, message: str) -> None:
        if not self._active:
            return
        if self._status is not None:
            self._status.update(message)
        else:
            self._progress.update(self._task, description=message)

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._status is not None:
            self._status.stop()
        else:
            self._progress.remove_task(self._task)

    def __enter__(self) -> _Spinner:
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()


def _progress_display() -> Progress:
    return Progress(
        TextColumn("{task.fields[label]}"),
        BarColumn(bar_width=60, style="red", complete_style="green", finished_style="green"),
        TextColumn("{task.fields[counter]}"),
        TextColumn("{task.description}"),
        console=Console(stderr=True),
        redirect_stdout=False,
        redirect_stderr=False,
    )


def verify(
    exercises: Iterable[Exercise],
    progress: tuple[int, int],
    verbose: bool = False,
    success_hints: bool = False,
) -> None:
    """Check each exercise in turn; raise VerificationFailed at the first that fails."""
    num_done, total = progress
    percentage = 100.0 * num_done / total if total else math.nan
    step = 100.0 / total if total else math.nan
    with _progress_display() as bar:
        task = bar.add_task(
            f"({percentage:.1f} %)",
            total=total,
            completed=num_done,
            label="Progress:",
            counter=f"{num_done}/{total}",
        )
        for exercise in exercises:
            if not _check(exercise, verbose, success_hints, bar):
                raise VerificationFailed(exercise)
            percentage += step
            num_done += 1
            bar.update(
                task,
                advance=1,
                description=f"({percentage:.1f} %)",
                counter=f"{num_done}/{total}",
            )


def test(exercise: Exercise, verbose: bool = False) -> None:
    """Build and run an exercise's tests; raise VerificationFailed on failure."""
    _compile_and_test(exercise, _RunMode.NON_INTERACTIVE, verbose, False, None)


def _check(
    exercise: Exercise, verbose: bool, success_hints: bool, bar: Progress | None
) -> bool:
    match exercise.mode:
        case Mode.TEST | Mode.BUILD_SCRIPT:
            return _compile_and_test(
                exercise, _RunMode.INTERACTIVE, verbose, success_hints, bar
            )
        case Mode.COMPILE:
            return _compile_and_run_interactively(exercise, success_hints, bar)
        case Mode.CLIPPY:
            return _compile_only(exercise, success_hints, bar)
    raise ValueError(f"unknown mode {exercise.mode!r}")


def _compile(exercise: Exercise, spinner: _Spinner) -> CompiledExercise:
    try:
        return exercise.compile()
    except ExerciseError as exc:
        spinner.stop()
        ui.warn(f"Compiling of {exercise} failed! Please try again. Here's the output:")
        print(exc.output.stderr)
        raise VerificationFailed(exercise) from exc


def _compile_only(exercise: Exercise, success_hints: bool, bar: Progress | None) -> bool:
    with _Spinner(f"Compiling {exercise}...", bar) as spinner:
        _compile(exercise, spinner).close()
    return _prompt_for_completion(exercise, None, success_hints)


def _compile_and_run_interactively(
    exercise: Exercise, success_hints: bool, bar: Progress | None
) -> bool:
    with _Spinner(f"Compiling {exercise}...", bar) as spinner:
        with _compile(exercise, spinner) as compiled:
            spinner.update(f"Running {exercise}...")
            try:
                output = compiled.run()
            except ExerciseError as exc:
                spinner.stop()
                ui.warn(f"Ran {exercise} with errors")
                print(exc.output.stdout)
                print(exc.output.stderr)
                raise VerificationFailed(exercise) from exc
    return _prompt_for_completion(exercise, output.stdout, success_hints)


def _compile_and_test(
    exercise: Exercise,
    run_mode: _RunMode,
    verbose: bool,
    success_hints: bool,
    bar: Progress | None,
) -> bool:
    with _Spinner(f"Testing {exercise}...", bar) as spinner:
        with _compile(exercise, spinner) as compiled:
            try:
                output = compiled.run()
            except ExerciseError as exc:
                spinner.stop()
                ui.warn(
                    f"Testing of {exercise} failed! Please try again. Here's the output:"
                )
                print(exc.output.stdout)
                raise VerificationFailed(exercise) from exc
    if verbose:
        print(output.stdout)
    if run_mode is _RunMode.INTERACTIVE:
        return _prompt_for_completion(exercise, None, success_hints)
    return True


def _prompt_for_completion(
    exercise: Exercise, prompt_output: str | None, success_hints: bool
) -> bool:
    state = exercise.state()
    if not isinstance(state, Pending):
        return True

    match exercise.mode:
        case Mode.COMPILE:
            ui.success(f"Successfully ran {exercise}!")
        case Mode.TEST:
            ui.success(f"Successfully tested {exercise}!")
        case Mode.CLIPPY | Mode.BUILD_SCRIPT:
            ui.success(f"Successfully compiled {exercise}!")

    no_emoji = ui.no_emoji()
    if no_emoji:
        clippy_success_msg = "The code is compiling, and Clippy is happy!"
    else:
        clippy_success_msg = "The code is compiling, and 📎 Clippy 📎 is happy!"
    success_msg = {
        Mode.COMPILE: "The code is compiling!",
        Mode.TEST: "The code is compiling, and the tests pass!",
        Mode.CLIPPY: clippy_success_msg,
        Mode.BUILD_SCRIPT: "Build script works!",
    }[exercise.mode]

    console = Console(highlight=False, soft_wrap=True)
    separator = Text(_SEPARATOR, style="bold")

    print()
    if no_emoji:
        print(f"~*~ {success_msg} ~*~")
    else:
        print(f"🎉 🎉  {success_msg} 🎉 🎉")
    print()

    if prompt_output is not None:
        print("Output:")
        console.print(separator)
        print(prompt_output)
        console.print(separator)
        print()
    if success_hints:
        print("Hints:")
        console.print(separator)
        print(exercise.hint)
        console.print(separator)
        print()

    print("You can keep working on this exercise,")
    console.print(
        Text.assemble(
            "or jump into the next one by removing the ",
            ("`I AM NOT DONE`", "bold"),
            " comment:",
        )
    )
    print()
    for context_line in state.context:
        console.print(
            Text.assemble(
                (f"{context_line.number:>2}", "bold blue"),
                " ",
                ("|", "blue"),
                "  ",
                (context_line.line, "bold" if context_line.important else ""),
            )
        )
    return False