from __future__ import annotations
from typing import Optional


class SandboxError(Exception):
    """Base class for every error raised at the engine boundary."""


class CodeValidationError(SandboxError):
    """Code rejected before any process was started (empty, oversized, ...)."""


class SecurityViolationError(CodeValidationError):
    def __init__(self, reason: str, pattern: str = "", language: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.pattern = pattern
        self.language = language


class UnsupportedLanguageError(SandboxError, ValueError):
    pass


class CompileError(SandboxError):
    """
    Build step failed: non-zero compiler exit, compiler could not start,
    or the expected artifact is missing after a clean exit.
    """

    def __init__(self, message: str, diagnostics: str = "", exit_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.diagnostics = diagnostics
        self.exit_code = exit_code

    def __str__(self) -> str:
        if self.diagnostics:
            return f"{self.message}: {self.diagnostics.strip()}"
        return self.message


class ExecutionCancelledError(SandboxError):
    pass
