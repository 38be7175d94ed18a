import pytest

from execbox.core.errors import CodeValidationError, SecurityViolationError
from execbox.core.models import ExecutionResult, ExecutionStatus, JudgeCase, Language, Verdict
from execbox.services.judge import normalize_epsilon, verdict_for
from execbox.services.orchestrator import CodeRunner

SUM = "a, b = map(int, input().split())\nprint(a + b)"


def outcome(status=ExecutionStatus.OK, stdout="", stderr="", wall=10, mem=100):
    exit_code = {ExecutionStatus.OK: 0, ExecutionStatus.TIME_LIMIT: 124, ExecutionStatus.MEMORY_LIMIT: 137}.get(status, 1)
    return ExecutionResult(status, stdout, stderr, exit_code, wall, wall, mem)


def cases(*pairs, hidden=False):
    return [JudgeCase(id=i + 1, input=inp, output=out, hidden=hidden) for i, (inp, out) in enumerate(pairs)]


# ---------- end to end through the fake sandbox tool ----------

def test_all_tests_accepted(settings, leftovers):
    res = CodeRunner(settings).judge("python", SUM, cases(("1 2\n", "3"), ("5 5\n", "10\n"), ("-1 1\n", "0")))
    assert res.verdict is Verdict.AC
    assert [t.verdict for t in res.tests] == [Verdict.AC] * 3
    assert res.tests[1].actual == "10\n"
    assert res.time_ms == sum(t.time_ms for t in res.tests)
    assert leftovers() == []


def test_wrong_answer_end_to_end(settings):
    res = CodeRunner(settings).judge("python", SUM, cases(("1 2\n", "3"), ("2 2\n", "5")))
    assert res.verdict is Verdict.WA
    wa = res.tests[1]
    assert wa.message == "Wrong answer"
    assert (wa.input, wa.expected, wa.actual) == ("2 2\n", "5", "4\n")


def test_runtime_error_end_to_end(settings):
    res = CodeRunner(settings).judge("python", "raise ValueError('bad')", cases(("", "x")))
    assert res.verdict is Verdict.RE
    assert "ValueError" in res.tests[0].stderr


# ---------- aggregation through a scripted launcher ----------

def test_worst_verdict_wins_and_totals_add_up(settings, spy):
    spy.results = [
        outcome(stdout="1\n", wall=5, mem=100),
        outcome(ExecutionStatus.TIME_LIMIT, wall=3000, mem=0),
        outcome(stdout="wrong\n", wall=7, mem=900),
        outcome(ExecutionStatus.MEMORY_LIMIT, wall=20, mem=300),
    ]
    res = CodeRunner(settings, launcher=spy).judge(
        "python", "print(1)", cases(("", "1"), ("", "1"), ("", "1"), ("", "1"))
    )
    assert [t.verdict for t in res.tests] == [Verdict.AC, Verdict.TLE, Verdict.WA, Verdict.MLE]
    assert res.verdict is Verdict.MLE
    assert res.time_ms == 5 + 3000 + 7 + 20
    assert res.memory_kb == 900
    assert res.tests[1].message == "Time limit exceeded"
    assert res.tests[3].message == "Memory limit exceeded"


def test_stop_at_first_failure(settings, spy):
    spy.results = [outcome(stdout="1\n"), outcome(stdout="2\n"), outcome(stdout="1\n")]
    res = CodeRunner(settings, launcher=spy).judge(
        "python", "print(1)", cases(("", "1"), ("", "1"), ("", "1")), run_all=False
    )
    assert res.verdict is Verdict.WA
    assert len(res.tests) == 2
    assert len(spy.calls) == 2


def test_run_all_keeps_going_after_failure(settings, spy):
    spy.results = [outcome(stdout="2\n"), outcome(stdout="1\n")]
    res = CodeRunner(settings, launcher=spy).judge("python", "print(1)", cases(("", "1"), ("", "1")))
    assert [t.verdict for t in res.tests] == [Verdict.WA, Verdict.AC]
    assert res.verdict is Verdict.WA


def test_output_limit_is_runtime_error(settings, spy):
    spy.results = [outcome(ExecutionStatus.OUTPUT_LIMIT, stdout="x" * 10)]
    res = CodeRunner(settings, launcher=spy).judge("python", "print(1)", cases(("", "1")))
    assert res.verdict is Verdict.RE
    assert res.tests[0].message == "Output limit exceeded"


def test_hidden_tests_withhold_details(settings, spy):
    spy.results = [outcome(stdout="1\n"), outcome(stdout="7\n", stderr="trace")]
    res = CodeRunner(settings, launcher=spy).judge(
        "python", "print(1)", cases(("secret-in", "1"), ("secret-in", "8"), hidden=True)
    )
    passed, failed = res.tests
    assert passed.actual is None
    assert failed.verdict is Verdict.WA
    assert failed.message == "Wrong answer"
    assert (failed.input, failed.expected, failed.actual, failed.stderr) == (None, None, None, None)
    assert "input" not in failed.to_dict()


def test_debug_reveals_hidden_details(settings, spy):
    spy.results = [outcome(stdout="7\n", stderr="trace")]
    res = CodeRunner(settings, launcher=spy).judge(
        "python", "print(1)", cases(("secret-in", "8"), hidden=True), debug=True
    )
    (failed,) = res.tests
    assert (failed.input, failed.expected, failed.actual, failed.stderr) == ("secret-in", "8", "7\n", "trace")


def test_details_are_truncated(settings, spy):
    spy.results = [outcome(stdout="y" * 10_000, stderr="e" * 10_000)]
    res = CodeRunner(settings, launcher=spy).judge("python", "print(1)", cases(("i" * 10_000, "z")))
    (t,) = res.tests
    assert len(t.input) == 4096
    assert t.expected == "z"
    assert len(t.actual) == 4096
    assert len(t.stderr) == 2048


def test_default_checker_ignores_whitespace(settings, spy):
    spy.results = [outcome(stdout="1   2\n\n")]
    res = CodeRunner(settings, launcher=spy).judge("python", "print(1)", cases(("", "1 2")))
    assert res.verdict is Verdict.AC


def test_out_of_range_epsilon_falls_back(settings, spy):
    spy.results = [outcome(stdout="1.5\n")]
    res = CodeRunner(settings, launcher=spy).judge(
        "python", "print(1)", cases(("", "1.0")), checker="float", epsilon=5
    )
    assert res.verdict is Verdict.WA


# ---------- one workspace, one build ----------

def test_build_once_and_share_workspace(settings, spy, scripts, monkeypatch):
    s = settings.model_copy(update={"cxx_bin": str(scripts.cxx_ok)})
    runner = CodeRunner(s, launcher=spy)
    cpp = runner.runners[Language.CPP]
    builds = []
    real_build = cpp.build
    monkeypatch.setattr(cpp, "build", lambda *a: (builds.append(a), real_build(*a)))

    spy.results = [outcome(stdout="3\n"), outcome(stdout="7\n"), outcome(stdout="0\n")]
    res = runner.judge("cpp", "int main() { return 0; }", cases(("1 2\n", "3"), ("3 4\n", "7"), ("0 0\n", "0")))

    assert res.verdict is Verdict.AC
    assert len(builds) == 1
    assert len({c.mounts for c in spy.calls}) == 1
    assert [c.stdin for c in spy.calls] == [b"1 2\n", b"3 4\n", b"0 0\n"]
    assert [f["app"] for f in spy.seen_files] == [b""] * 3


def test_compile_error_is_a_verdict(settings, spy, scripts, leftovers):
    s = settings.model_copy(update={"cxx_bin": str(scripts.cxx_fail)})
    res = CodeRunner(s, launcher=spy).judge("cpp", "int main() { return 0 }", cases(("", "0")))
    assert res.verdict is Verdict.CE
    assert res.tests == []
    assert "expected ';'" in res.compile_diagnostics
    assert res.to_dict()["compile"]["message"] == "Compilation failed"
    assert spy.calls == []
    assert leftovers() == []


# ---------- pre-flight ----------

@pytest.mark.parametrize("tests", [[], cases(*[("", "1")] * 201)])
def test_batch_size_is_bounded(settings, spy, tests):
    with pytest.raises(CodeValidationError):
        CodeRunner(settings, launcher=spy).judge("python", "print(1)", tests)
    assert spy.calls == []


def test_oversized_case_rejected(settings, spy):
    with pytest.raises(CodeValidationError):
        CodeRunner(settings, launcher=spy).judge("python", "print(1)", cases(("x" * (256 * 1024 + 1), "1")))


def test_unknown_checker(settings, spy):
    with pytest.raises(ValueError, match="unknown checker"):
        CodeRunner(settings, launcher=spy).judge("python", "print(1)", cases(("", "1")), checker="regex")


def test_security_violation_still_raises(settings, spy, leftovers):
    with pytest.raises(SecurityViolationError):
        CodeRunner(settings, launcher=spy).judge("python", "import socket", cases(("", "1")))
    assert spy.calls == []
    assert leftovers() == []


# ---------- helpers ----------

def test_verdict_ranking():
    assert Verdict.AC.worsen(Verdict.WA) is Verdict.WA
    assert Verdict.RE.worsen(Verdict.TLE) is Verdict.RE
    assert Verdict.MLE.worsen(Verdict.CE) is Verdict.CE
    assert [v.rank for v in Verdict] == list(range(6))


@pytest.mark.parametrize(
    "status, verdict",
    [
        (ExecutionStatus.OK, Verdict.AC),
        (ExecutionStatus.TIME_LIMIT, Verdict.TLE),
        (ExecutionStatus.MEMORY_LIMIT, Verdict.MLE),
        (ExecutionStatus.RUNTIME_ERROR, Verdict.RE),
        (ExecutionStatus.OUTPUT_LIMIT, Verdict.RE),
        (ExecutionStatus.SYSTEM_ERROR, Verdict.RE),
    ],
)
def test_status_to_verdict(status, verdict):
    assert verdict_for(status) is verdict


@pytest.mark.parametrize("eps, expected", [(1e-3, 1e-3), (0, 1e-6), (-1, 1e-6), (2, 1e-6), (float("nan"), 1e-6), ("x", 1e-6)])
def test_normalize_epsilon(eps, expected):
    assert normalize_epsilon(eps) == expected
