from __future__ import annotations
from threading import Event
from typing import Dict, Iterable, Optional, Sequence, Union

import structlog

from ..core.errors import CompileError, UnsupportedLanguageError
from ..core.limits import merge_limit_table, resolve_limits
from ..core.models import ExecutionResult, JudgeCase, JudgeResult, Language, ResourceLimits, Verdict
from ..core.settings import Settings, load_settings
from ..core.utils import code_digest
from ..executor.base import LaunchSpec, Launcher
from ..executor.launcher import SandboxLauncher
from ..runners.base import Runner
from ..runners.cpp_runner import CppRunner
from ..runners.java_runner import JavaRunner
from ..runners.python_runner import PythonRunner
from ..security.filter import SecurityFilter
from .checkers import get_checker
from .judge import Scoreboard, grade, normalize_epsilon, validate_cases
from .workspace import workspace

log = structlog.get_logger(__name__)


class CodeRunner:
    """
    Public entry point: limits -> static filter -> workspace -> build -> sandbox.

    Pre-flight and build failures raise (CodeValidationError,
    SecurityViolationError, CompileError). Anything after the sandbox starts
    is an ExecutionResult. The workspace is removed on every path.
    `judge` grades a batch of test cases against one build.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        launcher: Optional[Launcher] = None,
        security: Optional[SecurityFilter] = None,
        runners: Optional[Iterable[Runner]] = None,
    ):
        self.settings = settings or load_settings()
        self.launcher = launcher or SandboxLauncher.from_settings(self.settings)
        self.security = security or SecurityFilter(self.settings.max_code_bytes)
        self.limit_table = merge_limit_table(self.settings.limits)
        if runners is None:
            runners = [cls(self.settings) for cls in (PythonRunner, CppRunner, JavaRunner)]
        self.runners: Dict[Language, Runner] = {r.language: r for r in runners}

    def is_language_supported(self, language: str) -> bool:
        try:
            return Language.parse(language) in self.runners
        except UnsupportedLanguageError:
            return False

    def _runner_for(self, lang: Language) -> Runner:
        runner = self.runners.get(lang)
        if runner is None:
            raise UnsupportedLanguageError(f"Unsupported language: {lang.value}")
        return runner

    def default_limits(self, language: "Language | str") -> ResourceLimits:
        return resolve_limits(language, None, self.limit_table)

    def run(
        self,
        language: "Language | str",
        code: str,
        stdin: Union[str, bytes, None] = None,
        limits: Optional[ResourceLimits] = None,
        cancel_event: Optional[Event] = None,
    ) -> ExecutionResult:
        lang = Language.parse(language)
        resolved = resolve_limits(lang, limits, self.limit_table)
        self.security.check(code, lang)

        runner = self._runner_for(lang)

        data = stdin.encode("utf-8") if isinstance(stdin, str) else (stdin or b"")
        bound = log.bind(language=lang.value, code_sha=code_digest(code))

        with workspace(self.settings.temp_root) as ws:
            bound = bound.bind(invocation=ws.invocation_id)
            ws.write_source(runner.source_name, code)
            ws.write_stdin(data)
            try:
                runner.build(ws.path, resolved)
            except CompileError as e:
                bound.info("run.compile_error", exit_code=e.exit_code)
                raise

            spec = LaunchSpec(
                profile=runner.profile,
                command=runner.command(ws.path, resolved),
                stdin=data,
                limits=resolved,
                mounts=tuple(runner.mounts(ws.path)),
            )
            result = self.launcher.launch(spec, cancel_event=cancel_event)
            bound.info("run.done", status=result.status.value, wall_ms=result.wall_time_ms)
            return result

    def judge(
        self,
        language: "Language | str",
        code: str,
        tests: Sequence[JudgeCase],
        limits: Optional[ResourceLimits] = None,
        checker: str = "whitespace",
        epsilon: float = 1e-6,
        run_all: bool = True,
        debug: bool = False,
        cancel_event: Optional[Event] = None,
    ) -> JudgeResult:
        """
        Build once, then run every test case in the same workspace.

        A build failure is reported as a CE verdict rather than raised. With
        run_all=False the batch stops at the first non-AC test. Hidden tests
        carry no input/expected/actual unless `debug` is set.
        """
        lang = Language.parse(language)
        resolved = resolve_limits(lang, limits, self.limit_table)
        validate_cases(tests)
        check = get_checker(checker, normalize_epsilon(epsilon))
        self.security.check(code, lang)
        runner = self._runner_for(lang)
        bound = log.bind(language=lang.value, code_sha=code_digest(code), tests=len(tests))

        with workspace(self.settings.temp_root) as ws:
            bound = bound.bind(invocation=ws.invocation_id)
            ws.write_source(runner.source_name, code)
            try:
                runner.build(ws.path, resolved)
            except CompileError as e:
                bound.info("judge.compile_error", exit_code=e.exit_code)
                return JudgeResult(Verdict.CE, 0, 0, [], compile_message=e.message, compile_diagnostics=e.diagnostics)

            command = runner.command(ws.path, resolved)
            mounts = tuple(runner.mounts(ws.path))
            board = Scoreboard()
            for case in tests:
                data = case.input.encode("utf-8")
                ws.write_stdin(data)
                spec = LaunchSpec(
                    profile=runner.profile,
                    command=command,
                    stdin=data,
                    limits=resolved,
                    mounts=mounts,
                )
                res = grade(case, self.launcher.launch(spec, cancel_event=cancel_event), check, debug)
                board.add(res)
                if res.verdict is not Verdict.AC and not run_all:
                    break

            bound.info("judge.done", verdict=board.verdict.value, ran=len(board.tests), time_ms=board.time_ms)
            return board.result()
