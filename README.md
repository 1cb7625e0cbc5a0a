# rustdrill

rustdrill runs a directory of small Rust exercises. Each exercise is a single
`.rs` file, described in an `info.toml` file by its name, path, mode and hint.
rustdrill compiles each exercise with `rustc` or `cargo`, runs it, and tells
you which exercises still need work.

## Installation

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

`rustc` must be on your `PATH`. Exercises in `clippy` and `buildscript` mode
also need `cargo` (with Clippy for `clippy`). `reset` needs `git`.

## The exercise directory

Run rustdrill from the directory that holds `info.toml`:

```toml
[[exercises]]
name = "intro2"
path = "exercises/intro/intro2.rs"
mode = "compile"
hint = "Add the missing argument to println!."
```

Every entry needs all four fields. `mode` takes one of these values:

- `compile`: build the file as a program and run it.
- `test`: build the file as a test harness and run it with `--show-output`.
- `clippy`: write `exercises/clippy/Cargo.toml`, build the file, then run
  `cargo clean` and `cargo clippy` with warnings and `clippy::float_cmp`
  treated as errors.
- `buildscript`: write `exercises/tests/Cargo.toml` and run `cargo test` on it.

Compiled programs are written to a temporary file named `temp_<pid>_<thread>`
in the current directory and removed afterwards.

An exercise counts as unfinished while its source holds a line that starts
with `//` or `///` followed by `I AM NOT DONE` (the words may be separated by
any whitespace). Delete that line once the exercise works, and rustdrill moves
on to the next one.

## Commands

```
rustdrill                  # show the introduction
rustdrill --version        # print the version
rustdrill watch            # check exercises in order and re-check each saved file
rustdrill verify           # check every exercise in order and stop at the first failure
rustdrill run <name>       # compile and run one exercise
rustdrill hint <name>      # print the hint for an exercise
rustdrill reset <name>     # stash your changes to an exercise with git
rustdrill list             # list every exercise and its status
rustdrill lsp              # write rust-project.json for rust-analyzer
rustdrill cicvverify       # grade every exercise and write a JSON report
```

Apart from `--version`, every command must be run where `info.toml` exists
and `rustc --version` succeeds; otherwise rustdrill prints a message and exits
with status 1. Usage errors, such as a missing exercise name, also exit with
status 1.

`run`, `hint` and `reset` take an exercise name; the name `next` picks the
first exercise that still carries the `I AM NOT DONE` line. An unknown name
exits with status 1.

`--nocapture` goes before the subcommand. It prints the output of test
exercises.

`verify` and `watch` treat an exercise as failing if it does not build, if it
fails when run, or if it still carries the `I AM NOT DONE` line; in the last
case they show the lines around the marker. `run` only builds and runs the
exercise and ignores the marker.

`list` accepts these options:

- `-p/--paths`: print only the paths.
- `-n/--names`: print only the names.
- `-f/--filter a,b`: keep exercises whose name or path contains one of the
  comma-separated patterns (the patterns are lower-cased first).
- `-u/--unsolved`: keep only unfinished exercises.
- `-s/--solved`: keep only finished exercises.

The listing ends with a line giving how many exercises are finished.

`watch` accepts `--success-hints`, which shows an exercise's hint once it
passes. It watches the `exercises` directory; when a `.rs` file is saved it
re-checks the exercise for that file first and then every other unfinished
exercise. While `watch` runs, you can type these commands:

- `hint`: show the hint for the exercise that is failing.
- `clear`: clear the screen.
- `quit`: stop watching.
- `!<cmd>`: run a command, such as `!rustc --explain E0381`.
- `help`: list these commands.

`lsp` adds a crate for every `.rs` file under `exercises` and writes
`rust-project.json`. The standard library path is taken from the
`RUST_SRC_PATH` environment variable, or else from `rustc --print sysroot`.

`cicvverify` runs every exercise at once in a thread pool and writes the
results to `.github/result/check_result.json`. That directory must already
exist. The report looks like this:

```json
{
  "exercises": [{"name": "intro2", "result": true}],
  "user_name": null,
  "statistics": {
    "total_exercations": 1,
    "total_succeeds": 1,
    "total_failures": 0,
    "total_time": 3
  }
}
```

If the `NO_EMOJI` environment variable is set, plain symbols take the place
of emoji in the output.

## Using it from Python

```python
from rustdrill.exercise import load_exercises
from rustdrill.verify import verify, VerificationFailed

exercises = load_exercises("info.toml")
unfinished = [e for e in exercises if not e.looks_done()]
try:
    verify(exercises, (0, len(exercises)), verbose=False, success_hints=False)
except VerificationFailed as failure:
    print("stuck on", failure.exercise.name)
```

The modules are:

- `rustdrill.exercise`: `Exercise`, `Mode`, `load_exercises`,
  `Exercise.compile()` returning a `CompiledExercise` (a context manager with
  `run()` and `close()`), `Exercise.state()` returning `Done` or `Pending`,
  and `ExerciseError` carrying an `ExerciseOutput`.
- `rustdrill.verify`: `verify` and `test`, which raise `VerificationFailed`.
- `rustdrill.run`: `run` and `reset`.
- `rustdrill.grading`: `grade`, which returns an `ExerciseCheckList`, and
  `write_check_list`.
- `rustdrill.project`: `RustAnalyzerProject` and `Crate`.
- `rustdrill.watch`: `watch`, `WatchShell`, `WatchStatus` and `pending_order`.
- `rustdrill.cli`: `main`, `build_parser`, `find_exercise`, `list_exercises`
  and `rustc_exists`.

## What it does not do

rustdrill ships no exercises and no `info.toml`; you provide both. It puts no
time limit on compiling or running an exercise. `cicvverify` never fills in
`user_name` and does not create the report's directory.