from __future__ import annotations
from typing import Callable, List, Mapping, Optional

import structlog

from ..core.errors import CodeValidationError, SecurityViolationError
from ..core.models import Language
from ..core.utils import code_digest
from .rules import Rule, rules_for

log = structlog.get_logger(__name__)

MAX_CODE_BYTES = 1024 * 1024


class SecurityFilter:
    """
    Static pre-flight check run before any process is spawned.

    Advisory only: the sandbox is the real boundary. A match raises and the
    caller never reaches the build or launch steps.
    """

    def __init__(
        self,
        max_code_bytes: int = MAX_CODE_BYTES,
        lookup: Optional[Callable[[Language], List[Rule]]] = None,
    ):
        self.max_code_bytes = max_code_bytes
        self._lookup = lookup or rules_for

    def validate_size(self, code: str) -> None:
        if not code or not code.strip():
            raise CodeValidationError("Code cannot be empty")
        if len(code.encode("utf-8", errors="replace")) > self.max_code_bytes:
            raise CodeValidationError(
                f"Code size exceeds maximum limit ({self.max_code_bytes} bytes)"
            )

    def check(self, code: str, language: Language) -> None:
        self.validate_size(code)
        for rule in self._lookup(language):
            if rule.search(code):
                log.warning(
                    "security.rejected",
                    language=language.value,
                    pattern=rule.label,
                    code_sha=code_digest(code),
                )
                raise SecurityViolationError(
                    f"Code contains potentially dangerous pattern: {rule.label}",
                    pattern=rule.label,
                    language=language.value,
                )


def check_code(code: str, language: "Language | str", rules: Optional[Mapping[Language, List[Rule]]] = None) -> None:
    lang = Language.parse(language)
    lookup = (lambda l: list(rules.get(l, []))) if rules is not None else None
    SecurityFilter(lookup=lookup).check(code, lang)
