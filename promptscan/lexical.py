"""Language-agnostic heuristics for likely prompt definitions and usages."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Pattern, Sequence, Set, Tuple

from .models import PromptKeywordHit

_LINE_SPLIT = re.compile(r"\r?\n")
_WHITESPACE = re.compile(r"\s+")

_DEDUPE_PREFIX = 50


@dataclass(frozen=True)
class BlockPattern:
    """Multi-line extractor capturing a full prompt body."""

    label: str
    regex: Pattern[str]
    group: int


@dataclass(frozen=True)
class LineMatcher:
    """Single-line predicate; order in the table is precedence."""

    label: str
    test: Callable[[str], bool]


def _all_of(*patterns: str) -> Callable[[str], bool]:
    compiled = [re.compile(pattern, re.IGNORECASE) for pattern in patterns]
    return lambda line: all(regex.search(line) for regex in compiled)


BLOCK_PATTERNS: Tuple[BlockPattern, ...] = (
    # system: `...`
    BlockPattern(
        "js_ts_system_template_literal",
        re.compile(r"\bsystem\s*:\s*`([\s\S]*?)`"),
        1,
    ),
    # { role: "system", ... content: `...` }
    BlockPattern(
        "js_ts_role_system_then_content_template",
        re.compile(r"role\s*:\s*[\"']system[\"'][\s\S]*?content\s*:\s*`([\s\S]*?)`", re.IGNORECASE),
        1,
    ),
    # { content: `...`, ... role: "system" }
    BlockPattern(
        "js_ts_content_template_then_role_system",
        re.compile(r"content\s*:\s*`([\s\S]*?)`[\s\S]*?role\s*:\s*[\"']system[\"']", re.IGNORECASE),
        1,
    ),
    # system = """...""" or system: """..."""
    BlockPattern(
        "py_system_triple_quoted",
        re.compile(r"\bsystem\s*[:=]\s*([\"']{3})([\s\S]*?)\1"),
        2,
    ),
    # role="system", content="""..."""
    BlockPattern(
        "py_role_system_triple_content",
        re.compile(
            r"role\s*=\s*[\"']system[\"'][\s\S]*?content\s*=\s*([\"']{3})([\s\S]*?)\1",
            re.IGNORECASE,
        ),
        2,
    ),
    BlockPattern(
        "py_content_triple_then_role_system",
        re.compile(
            r"content\s*=\s*([\"']{3})([\s\S]*?)\1[\s\S]*?role\s*=\s*[\"']system[\"']",
            re.IGNORECASE,
        ),
        2,
    ),
)

LINE_MATCHERS: Tuple[LineMatcher, ...] = (
    LineMatcher("role_system", _all_of(r"\brole\b", r"\bsystem\b")),
    LineMatcher("system_prompt_identifier", _all_of(r"\bsystem[_-]?prompt\b")),
    LineMatcher("system_message_identifier", _all_of(r"\bsystem\s*message\b|\bsystemMessage\b")),
    LineMatcher(
        "messages_role_system_inline",
        _all_of(r"\bmessages?\b", r"\brole\b", r"\bsystem\b"),
    ),
    LineMatcher("system_directive_you_are", _all_of(r"\byou are\b", r"\b(system|assistant)\b")),
    LineMatcher("generic_prompt_with_system", _all_of(r"\bprompt\b", r"\bsystem\b")),
    LineMatcher(
        "common_identifier_variants",
        _all_of(r"(initialSystemPrompt|baseSystemPrompt|systemInstructions|systemSpec)"),
    ),
)


def normalize_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


class LexicalScanner:
    """Finds prompt-like content in raw text of any language.

    Block extractors run first and capture whole prompt bodies; line
    heuristics then report at most one label per line. Hits sharing the
    ``(label, line, snippet[:50])`` key are reported once.
    """

    def __init__(
        self,
        block_patterns: Sequence[BlockPattern] = BLOCK_PATTERNS,
        line_matchers: Sequence[LineMatcher] = LINE_MATCHERS,
    ) -> None:
        self.block_patterns = tuple(block_patterns)
        self.line_matchers = tuple(line_matchers)

    def scan(self, text: str, file_path: str) -> List[PromptKeywordHit]:
        hits: List[PromptKeywordHit] = []
        seen: Set[Tuple[str, int, str]] = set()

        for block in self.block_patterns:
            for match in block.regex.finditer(text):
                line = text.count("\n", 0, match.start()) + 1
                content = match.group(block.group) or ""
                key = (block.label, line, content[:_DEDUPE_PREFIX])
                if key in seen:
                    continue
                seen.add(key)
                hits.append(
                    PromptKeywordHit(file_path=file_path, line=line, match_label=block.label, snippet=content)
                )

        lines = _LINE_SPLIT.split(text)
        for index, raw_line in enumerate(lines):
            for matcher in self.line_matchers:
                if not matcher.test(raw_line):
                    continue
                previous = lines[index - 1] if index > 0 else ""
                following = lines[index + 1] if index + 1 < len(lines) else ""
                snippet = normalize_whitespace(
                    " ".join(part for part in (previous, raw_line, following) if part)
                )
                key = (matcher.label, index + 1, snippet[:_DEDUPE_PREFIX])
                if key in seen:
                    continue
                seen.add(key)
                hits.append(
                    PromptKeywordHit(
                        file_path=file_path,
                        line=index + 1,
                        match_label=matcher.label,
                        snippet=snippet,
                    )
                )
                break

        return hits


_DEFAULT_SCANNER = LexicalScanner()


def scan_text_for_prompt_keywords(text: str, file_path: str) -> List[PromptKeywordHit]:
    """Scan ``text`` with the default block and line tables."""
    return _DEFAULT_SCANNER.scan(text, file_path)


__all__ = [
    "BLOCK_PATTERNS",
    "BlockPattern",
    "LINE_MATCHERS",
    "LexicalScanner",
    "LineMatcher",
    "normalize_whitespace",
    "scan_text_for_prompt_keywords",
]
