"""Heuristic pre-scan for credential-shaped tokens."""

from __future__ import annotations

import re
from typing import List, Pattern, Sequence, Tuple

from .models import SecretFinding

_LINE_SPLIT = re.compile(r"\r?\n")

SECRET_PATTERNS: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("openai_key", re.compile(r"sk-[A-Za-z0-9]{20,}")),
    ("bearer_token", re.compile(r"Bearer\s+[A-Za-z0-9\-_.]+")),
    (
        "url_private",
        re.compile(r"https?://[\w.-]+\.[\w.-]+/.+/(?:token|key|secret)[^\s\"']*", re.IGNORECASE),
    ),
)


class SecretScanner:
    """Flags obvious tokens and credential URLs line by line."""

    def __init__(self, patterns: Sequence[Tuple[str, Pattern[str]]] = SECRET_PATTERNS) -> None:
        self.patterns = tuple(patterns)

    def scan(self, text: str, file_path: str) -> List[SecretFinding]:
        findings: List[SecretFinding] = []
        for index, line in enumerate(_LINE_SPLIT.split(text), start=1):
            for rule, pattern in self.patterns:
                for match in pattern.finditer(line):
                    findings.append(
                        SecretFinding(match=match.group(0), file_path=file_path, line=index, rule=rule)
                    )
        return findings


_DEFAULT_SCANNER = SecretScanner()


def scan_text_for_secrets(text: str, file_path: str) -> List[SecretFinding]:
    """Scan ``text`` with the default pattern table."""
    return _DEFAULT_SCANNER.scan(text, file_path)


__all__ = ["SECRET_PATTERNS", "SecretScanner", "scan_text_for_secrets"]
