"""Grading every exercise at once and recording the results."""

from __future__ import annotations

import json
import os
import threading
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path

from .exercise import Exercise
from .run import run
from .verify import VerificationFailed

DEFAULT_RESULT_PATH = ".github/result/check_result.json"


@dataclass
class ExerciseResult:
    """Whether one exercise passed."""

    name: str
    result: bool


@dataclass
class ExerciseStatistics:
    """Totals over a grading run."""

    total_exercations: int
    total_succeeds: int = 0
    total_failures: int = 0
    total_time: int = 0


@dataclass
class ExerciseCheckList:
    """The full grading report."""

    exercises: list[ExerciseResult] = field(default_factory=list)
    user_name: str | None = None
    statistics: ExerciseStatistics = field(
        default_factory=lambda: ExerciseStatistics(total_exercations=0)
    )

    def to_json(self) -> str:
        """Serialise the report as indented JSON."""
        return json.dumps(asdict(self), indent=2, ensure_ascii=False)


def _now() -> int:
    return int(time.time())


def grade(exercises: Sequence[Exercise], verbose: bool = True) -> ExerciseCheckList:
    """Run every exercise concurrently and collect a report of the outcomes."""
    started = _now()
    total = len(exercises)
    check_list = ExerciseCheckList(statistics=ExerciseStatistics(total_exercations=total))
    lock = threading.Lock()
    rights = 0

    def grade_one(exercise: Exercise) -> None:
        nonlocal rights
        exercise_started = _now()
        try:
            run(exercise, verbose)
            passed = True
        except VerificationFailed:
            passed = False
        with lock:
            if passed:
                rights += 1
                print(f"{exercise.name}执行成功")
            else:
                print(f"{exercise.name}执行失败")
            print(f"总的题目数: {total}")
            print(f"当前做正确的题目数: {rights}")
            print(f"当前修改试卷耗时: {_now() - exercise_started} s")
            check_list.exercises.append(ExerciseResult(name=exercise.name, result=passed))
            if passed:
                check_list.statistics.total_succeeds += 1
            else:
                check_list.statistics.total_failures += 1

    if exercises:
        with ThreadPoolExecutor() as pool:
            for future in [pool.submit(grade_one, exercise) for exercise in exercises]:
                future.result()

    total_time = _now() - started
    print(
        "===============================试卷批改完成,总耗时: "
        f"{total_time} s; =================================="
    )
    check_list.statistics.total_time = total_time
    return check_list


def write_check_list(
    check_list: ExerciseCheckList, path: str | os.PathLike = DEFAULT_RESULT_PATH
) -> None:
    """Write the report to disk as JSON."""
    Path(path).write_text(check_list.to_json(), encoding="utf-8")