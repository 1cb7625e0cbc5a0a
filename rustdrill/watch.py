"""Watch mode: re-verify exercises when their files change."""

from __future__ import annotations

import enum
import os
import queue
import subprocess
import sys
import threading
import time
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import TextIO

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .exercise import Exercise
from .verify import VerificationFailed, verify

_DEBOUNCE_SECONDS = 1.0

_HELP = """Commands available to you in watch mode:
  hint   - prints the current exercise's hint
  clear  - clears the screen
  quit   - quits watch mode
  !<cmd> - executes a command, like `!rustc --explain E0381`
  help   - displays this help message

Watch mode automatically re-evaluates the current exercise
when you edit a file's contents."""


class WatchStatus(enum.Enum):
    """How watch mode ended."""

    FINISHED = enum.auto()
    UNFINISHED = enum.auto()


class WatchShell:
    """The small command shell that runs alongside watch mode."""

    def __init__(self, hint: str | None = None, stdin: TextIO | None = None) -> None:
        self.hint = hint
        self.should_quit = threading.Event()
        self._stdin = stdin

    def handle(self, command: str) -> None:
        """Carry out one command line."""
        command = command.strip()
        if command == "hint":
            if self.hint is not None:
                print(self.hint)
        elif command == "clear":
            print("\x1B[2J\x1B[1;1H")
        elif command == "quit":
            self.should_quit.set()
            print("Bye!")
        elif command == "help":
            print(_HELP)
        elif command.startswith("!"):
            cmd = command[1:]
            parts = cmd.split()
            if not parts:
                print("no command provided")
                return
            try:
                subprocess.run(parts)
            except OSError as exc:
                print(f"failed to execute command `{cmd}`: {exc}")
        else:
            print(f"unknown command: {command}")

    def run(self) -> None:
        """Read and handle commands until quit or end of input."""
        stdin = self._stdin if self._stdin is not None else sys.stdin
        while not self.should_quit.is_set():
            try:
                line = stdin.readline()
            except (OSError, ValueError) as exc:
                print(f"error reading command: {exc}")
                continue
            if not line:
                return
            self.handle(line)


def _ends_with(path: Path, suffix: Path) -> bool:
    tail = suffix.parts
    return len(tail) <= len(path.parts) and path.parts[len(path.parts) - len(tail):] == tail


def pending_order(exercises: Sequence[Exercise], changed_path: str | os.PathLike) -> list[Exercise]:
    """The changed exercise first, then every other unfinished exercise."""
    changed = Path(changed_path)
    first = next((e for e in exercises if _ends_with(changed, e.path)), None)
    rest = [e for e in exercises if not _ends_with(changed, e.path) and not e.looks_done()]
    return ([first] if first is not None else []) + rest


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, changes: queue.Queue[str]) -> None:
        super().__init__()
        self._changes = changes

    def _record(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._changes.put(os.fsdecode(event.src_path))

    def on_created(self, event: FileSystemEvent) -> None:
        self._record(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._record(event)


def _settled(changes: queue.Queue[str], seen: dict[str, float]) -> Iterator[str]:
    """Gather events for up to a second and yield paths that have gone quiet."""
    try:
        path = changes.get(timeout=_DEBOUNCE_SECONDS)
        seen[path] = time.monotonic()
        while True:
            path = changes.get_nowait()
            seen[path] = time.monotonic()
    except queue.Empty:
        pass
    now = time.monotonic()
    for path, stamp in list(seen.items()):
        if now - stamp >= _DEBOUNCE_SECONDS:
            del seen[path]
            yield path


def _clear_screen() -> None:
    print("\x1Bc")


def watch(
    exercises: Sequence[Exercise], verbose: bool = False, success_hints: bool = False
) -> WatchStatus:
    """Verify exercises, then re-verify on every change until done or quit."""
    changes: queue.Queue[str] = queue.Queue()
    observer = Observer()
    observer.schedule(_ChangeHandler(changes), "./exercises", recursive=True)
    observer.start()
    try:
        _clear_screen()
        try:
            verify(exercises, (0, len(exercises)), verbose, success_hints)
            return WatchStatus.FINISHED
        except VerificationFailed as failure:
            shell = WatchShell(hint=failure.exercise.hint)

        print(
            "Welcome to watch mode! You can type 'help' to get an overview "
            "of the commands you can use here."
        )
        threading.Thread(target=shell.run, daemon=True).start()

        seen: dict[str, float] = {}
        while True:
            for changed in _settled(changes, seen):
                path = Path(changed)
                if path.suffix != ".rs" or not path.exists():
                    continue
                ordered = pending_order(exercises, path.resolve())
                num_done = sum(1 for e in exercises if e.looks_done())
                _clear_screen()
                try:
                    verify(ordered, (num_done, len(exercises)), verbose, success_hints)
                    return WatchStatus.FINISHED
                except VerificationFailed as failure:
                    shell.hint = failure.exercise.hint
            if shell.should_quit.is_set():
                return WatchStatus.UNFINISHED
    finally:
        observer.stop()
        observer.join()