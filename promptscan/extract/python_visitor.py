"""AST-based extraction of prompt literals from Python LLM client calls.

Runnable as ``python -m promptscan.extract.python_visitor ROOT``: relative
file paths are read from stdin (one per line, empty input means "walk ROOT
for ``*.py``") and a single JSON array of artifacts is printed to stdout.
"""

from __future__ import annotations

import ast
import json
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models import PromptArtifact, Role, normalize_role
from ..walker import DirectoryWalker

LLM_CALLEE_NAMES: Tuple[Tuple[str, ...], ...] = (
    ("openai", "ChatCompletion", "create"),
    ("openai", "chat", "completions", "create"),
    ("client", "chat", "completions", "create"),
    ("anthropic", "messages", "create"),
    ("client", "messages", "create"),
    ("client", "responses", "create"),
    ("llm", "invoke"),
)

_KEYWORD_ROLES: Dict[str, Role] = {
    "system": "system",
    "system_prompt": "system",
    "user": "user",
    "prompt": "user",
    "input": "user",
    "tool": "tool",
    "tools_prompt": "tool",
}

_MAX_WALK_FILES = 10000


def infer_role_from_keyword(name: Optional[str]) -> Role:
    if not name:
        return "unknown"
    return _KEYWORD_ROLES.get(name, "unknown")


def callee_segments(node: ast.AST) -> Tuple[str, ...]:
    """Return the dotted chain of ``node`` when it is rooted at a plain name."""
    segments: List[str] = []
    while isinstance(node, ast.Attribute):
        segments.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return ()
    segments.append(node.id)
    segments.reverse()
    return tuple(segments)


def string_literal(node: ast.AST) -> Optional[str]:
    """Return the literal text of a string constant or the constant parts of an f-string."""
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    if isinstance(node, ast.JoinedStr):
        return "".join(
            value.value
            for value in node.values
            if isinstance(value, ast.Constant) and isinstance(value.value, str)
        )
    return None


def _is_llm_call(callee: Tuple[str, ...]) -> bool:
    return any(
        len(callee) >= len(shape) and callee[-len(shape):] == shape for shape in LLM_CALLEE_NAMES
    )


class PromptVisitor(ast.NodeVisitor):
    """Collects prompt artifacts from recognized LLM calls in one module."""

    def __init__(self, file_path: str) -> None:
        self.file_path = file_path
        self.results: List[PromptArtifact] = []
        self._func_stack: List[str] = []

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._func_stack.append(node.name)
        self.generic_visit(node)
        self._func_stack.pop()

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._func_stack.append(node.name)
        self.generic_visit(node)
        self._func_stack.pop()

    def visit_Call(self, node: ast.Call) -> None:
        callee = callee_segments(node.func)
        if callee and _is_llm_call(callee):
            signature = ".".join(callee)
            for keyword in node.keywords:
                text = string_literal(keyword.value)
                if text:
                    self._record(infer_role_from_keyword(keyword.arg), text, node, signature)
                else:
                    self._collect_messages(keyword.value, node, signature)
            for arg in node.args:
                self._collect_messages(arg, node, signature)
        self.generic_visit(node)

    def _collect_messages(self, value: ast.AST, call: ast.Call, signature: str) -> None:
        if isinstance(value, ast.Dict):
            self._collect_message(value, call, signature)
        elif isinstance(value, (ast.List, ast.Tuple)):
            for element in value.elts:
                if isinstance(element, ast.Dict):
                    self._collect_message(element, call, signature)

    def _collect_message(self, mapping: ast.Dict, call: ast.Call, signature: str) -> None:
        keys = [
            key.value if isinstance(key, ast.Constant) and isinstance(key.value, str) else None
            for key in mapping.keys
        ]
        if "role" not in keys or "content" not in keys:
            return
        role: Optional[str] = None
        text: Optional[str] = None
        for key, value in zip(keys, mapping.values):
            if key == "role" and isinstance(value, ast.Constant) and isinstance(value.value, str):
                role = value.value
            elif key == "content":
                text = string_literal(value)
        if text:
            self._record(normalize_role(role), text, call, signature)

    def _record(self, role: Role, text: str, call: ast.Call, signature: str) -> None:
        self.results.append(
            PromptArtifact(
                role=role,
                text=text,
                file_path=self.file_path,
                line=call.lineno,
                source_kind="structural",
                function_name=self._func_stack[-1] if self._func_stack else None,
                call_signature=signature,
            )
        )


def extract_from_source(source: str, file_path: str) -> List[PromptArtifact]:
    """Parse ``source`` and return its artifacts; raises ``SyntaxError`` on bad input."""
    tree = ast.parse(source, filename=file_path)
    visitor = PromptVisitor(file_path)
    visitor.visit(tree)
    return visitor.results


def extract_from_file(path: Path, file_path: str) -> List[PromptArtifact]:
    """Return artifacts for one file, or nothing when it cannot be read or parsed."""
    try:
        source = path.read_text(encoding="utf-8")
        return extract_from_source(source, file_path)
    except (OSError, UnicodeDecodeError, SyntaxError, ValueError, RecursionError):
        return []


def extract_files(root: Path, files: Iterable[str]) -> List[PromptArtifact]:
    results: List[PromptArtifact] = []
    for rel_path in files:
        results.extend(extract_from_file(root / rel_path, rel_path))
    return results


def _discover_python_files(root: Path) -> List[str]:
    listed = DirectoryWalker().list_files(root, _MAX_WALK_FILES).files
    return [path for path in listed if path.endswith(".py")]


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 1:
        print("usage: python -m promptscan.extract.python_visitor ROOT", file=sys.stderr)
        return 2
    root = Path(args[0])
    if not root.is_dir():
        print(f"not a directory: {root}", file=sys.stderr)
        return 2

    requested = [line.strip() for line in sys.stdin.read().splitlines() if line.strip()]
    files = requested or _discover_python_files(root)
    artifacts = extract_files(root, files)
    json.dump([artifact.to_dict() for artifact in artifacts], sys.stdout)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
