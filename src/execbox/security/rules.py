"""
Per-language deny patterns for the static pre-flight check.

Order matters: the first matching rule names the rejection. New languages
register a list here; nothing else in the engine needs to change.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Pattern

from ..core.models import Language


@dataclass(frozen=True)
class Rule:
    pattern: Pattern[str]
    label: str

    def search(self, code: str) -> bool:
        return self.pattern.search(code) is not None


def _rules(*items: "tuple[str, str]") -> List[Rule]:
    return [Rule(re.compile(rx), label) for rx, label in items]


PYTHON_RULES = _rules(
    (r"__import__\s*\(", "__import__("),
    (r"eval\s*\(", "eval("),
    (r"exec\s*\(", "exec("),
    (r"compile\s*\(", "compile("),
    (r"open\s*\([^)]*['\"]/etc", "open('/etc...')"),
    (r"open\s*\([^)]*['\"]/proc", "open('/proc...')"),
    (r"open\s*\([^)]*['\"]/sys", "open('/sys...')"),
    (r"subprocess", "subprocess"),
    (r"os\.system", "os.system"),
    (r"os\.popen", "os.popen"),
    (r"socket", "socket"),
    (r"urllib", "urllib"),
    (r"requests", "requests"),
)

CPP_RULES = _rules(
    (r"system\s*\(", "system("),
    (r"popen\s*\(", "popen("),
    (r"execve", "execve"),
    (r"fork", "fork"),
    (r"socket", "socket"),
    (r"connect", "connect"),
    (r"#include\s*<sys/socket\.h>", "<sys/socket.h>"),
    (r"#include\s*<netinet/in\.h>", "<netinet/in.h>"),
    (r"#include\s*<arpa/inet\.h>", "<arpa/inet.h>"),
)

JAVA_RULES = _rules(
    (r"Runtime\.getRuntime\(\)", "Runtime.getRuntime()"),
    (r"ProcessBuilder", "ProcessBuilder"),
    (r"Process\.", "Process."),
    (r"java\.net\.Socket", "java.net.Socket"),
    (r"java\.net\.ServerSocket", "java.net.ServerSocket"),
    (r"java\.net\.URL", "java.net.URL"),
    (r"java\.net\.URLConnection", "java.net.URLConnection"),
    (r"java\.io\.File.*/etc", "java.io.File /etc"),
    (r"java\.io\.File.*/proc", "java.io.File /proc"),
    (r"java\.io\.File.*/sys", "java.io.File /sys"),
    (r"java\.lang\.reflect", "java.lang.reflect"),
    (r"Class\.forName", "Class.forName"),
    (r"System\.exit", "System.exit"),
    (r"System\.load", "System.load"),
    (r"System\.loadLibrary", "System.loadLibrary"),
    (r"java\.security", "java.security"),
    (r"javax\.crypto", "javax.crypto"),
    (r"java\.nio\.channels\.SocketChannel", "java.nio.channels.SocketChannel"),
)

RULES: Dict[Language, List[Rule]] = {
    Language.PYTHON: PYTHON_RULES,
    Language.CPP: CPP_RULES,
    Language.JAVA: JAVA_RULES,
}


def register_rules(language: Language, rules: Iterable[Rule]) -> None:
    RULES[language] = list(rules)


def rules_for(language: Language) -> List[Rule]:
    return RULES.get(language, [])
