"""
Grading of one sandboxed run against a test case, plus the running
scoreboard for a batch: worst verdict wins, times add up, memory peaks.
"""
from __future__ import annotations
import math
from typing import List, Sequence

from ..core.errors import CodeValidationError
from ..core.models import CaseResult, ExecutionResult, ExecutionStatus, JudgeCase, JudgeResult, Verdict
from .checkers import Checker

MAX_TESTS = 200
MAX_CASE_BYTES = 256 * 1024
DETAIL_CHARS = 4096
SHORT_DETAIL_CHARS = 2048
DEFAULT_EPSILON = 1e-6

_STATUS_VERDICTS = {
    ExecutionStatus.OK: Verdict.AC,
    ExecutionStatus.TIME_LIMIT: Verdict.TLE,
    ExecutionStatus.MEMORY_LIMIT: Verdict.MLE,
}

_MESSAGES = {
    ExecutionStatus.TIME_LIMIT: "Time limit exceeded",
    ExecutionStatus.MEMORY_LIMIT: "Memory limit exceeded",
    ExecutionStatus.OUTPUT_LIMIT: "Output limit exceeded",
    ExecutionStatus.SYSTEM_ERROR: "System error",
}


def validate_cases(cases: Sequence[JudgeCase]) -> None:
    if not cases:
        raise CodeValidationError("At least one test case is required")
    if len(cases) > MAX_TESTS:
        raise CodeValidationError(f"Too many test cases (max {MAX_TESTS})")
    for case in cases:
        if len(case.input) > MAX_CASE_BYTES or len(case.output) > MAX_CASE_BYTES:
            raise CodeValidationError(f"Test case {case.id} exceeds {MAX_CASE_BYTES} characters")


def normalize_epsilon(epsilon: float) -> float:
    try:
        eps = float(epsilon)
    except (TypeError, ValueError):
        return DEFAULT_EPSILON
    if not math.isfinite(eps) or eps <= 0 or eps > 1:
        return DEFAULT_EPSILON
    return eps


def verdict_for(status: ExecutionStatus) -> Verdict:
    # output overflow and sandbox failures count as runtime errors
    return _STATUS_VERDICTS.get(status, Verdict.RE)


def _cut(s: str, n: int) -> str:
    return (s or "")[:n]


def grade(case: JudgeCase, run: ExecutionResult, check: Checker, debug: bool = False) -> CaseResult:
    verdict = verdict_for(run.status)
    res = CaseResult(test_id=case.id, verdict=verdict, time_ms=run.wall_time_ms, memory_kb=run.memory_kb)
    details = debug or not case.hidden

    if verdict is Verdict.AC:
        if check(run.stdout, case.output):
            if details:
                res.actual = _cut(run.stdout, SHORT_DETAIL_CHARS)
            return res
        res.verdict = Verdict.WA
        res.message = "Wrong answer"
        stderr_chars = SHORT_DETAIL_CHARS
    else:
        res.message = _MESSAGES.get(run.status, "Runtime error")
        stderr_chars = DETAIL_CHARS

    if details:
        res.input = _cut(case.input, DETAIL_CHARS)
        res.expected = _cut(case.output, DETAIL_CHARS)
        res.actual = _cut(run.stdout, DETAIL_CHARS)
        res.stderr = _cut(run.stderr, stderr_chars)
    return res


class Scoreboard:
    def __init__(self) -> None:
        self.verdict = Verdict.AC
        self.time_ms = 0
        self.memory_kb = 0
        self.tests: List[CaseResult] = []

    def add(self, res: CaseResult) -> None:
        self.tests.append(res)
        self.verdict = self.verdict.worsen(res.verdict)
        self.time_ms += res.time_ms
        self.memory_kb = max(self.memory_kb, res.memory_kb)

    def result(self) -> JudgeResult:
        return JudgeResult(self.verdict, self.time_ms, self.memory_kb, list(self.tests))
