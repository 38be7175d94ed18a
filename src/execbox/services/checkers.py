from __future__ import annotations
import math
import re
from typing import Callable, List, Optional

_NUMBER = re.compile(r"^[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?$")

Checker = Callable[[str, str], bool]


def _normalize_newlines(s: str) -> str:
    return (s or "").replace("\r\n", "\n").replace("\r", "\n")


def _tokens(s: str) -> List[str]:
    return _normalize_newlines(s).split()


def check_exact(actual: str, expected: str) -> bool:
    return _normalize_newlines(actual).rstrip() == _normalize_newlines(expected).rstrip()


def check_whitespace(actual: str, expected: str) -> bool:
    return _tokens(actual) == _tokens(expected)


def _as_number(tok: str) -> Optional[float]:
    if not _NUMBER.match(tok):
        return None
    n = float(tok)
    return n if math.isfinite(n) else None


def _nearly_equal(a: float, b: float, eps: float) -> bool:
    diff = abs(a - b)
    if diff <= eps:
        return True
    return diff <= eps * max(1.0, abs(a), abs(b))


def check_float(actual: str, expected: str, epsilon: float = 1e-6) -> bool:
    a_toks, e_toks = _tokens(actual), _tokens(expected)
    if len(a_toks) != len(e_toks):
        return False
    for a, e in zip(a_toks, e_toks):
        an, en = _as_number(a), _as_number(e)
        if an is not None and en is not None:
            if not _nearly_equal(an, en, epsilon):
                return False
        elif a != e:
            return False
    return True


def get_checker(name: str = "exact", epsilon: float = 1e-6) -> Checker:
    name = (name or "exact").lower()
    if name == "exact":
        return check_exact
    if name == "whitespace":
        return check_whitespace
    if name == "float":
        return lambda actual, expected: check_float(actual, expected, epsilon)
    raise ValueError(f"unknown checker: {name}")
