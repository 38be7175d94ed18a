from __future__ import annotations
import codecs
import hashlib
import os
import secrets
from typing import Optional

from .models import Language


def new_invocation_id() -> str:
    # pid + random token: unique across concurrent calls and worker processes
    return f"{os.getpid()}-{secrets.token_hex(8)}"


def infer_lang_from_entry(entry: str) -> Optional[Language]:
    entry = entry.lower()
    if entry.endswith(".py"):
        return Language.PYTHON
    if entry.endswith((".cpp", ".cc", ".cxx")):
        return Language.CPP
    if entry.endswith(".java"):
        return Language.JAVA
    return None


def code_digest(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8", errors="replace")).hexdigest()[:16]


def decode_output(data: bytes, limit: Optional[int] = None) -> str:
    """
    Lossy UTF-8 decode. With `limit`, the first `limit` bytes are kept and
    the result re-encodes to at most `limit` bytes: a code point cut at the
    boundary is dropped, and replacement characters that would push past the
    limit are trimmed.
    """
    if limit is None:
        return data.decode("utf-8", errors="replace")
    head = data[:limit]
    text = codecs.getincrementaldecoder("utf-8")(errors="replace").decode(head, final=False)
    raw = text.encode("utf-8")
    if len(raw) > limit:
        text = raw[:limit].decode("utf-8", errors="ignore")
    return text
