"""Core data models shared across promptscan components."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple, cast

Role = Literal["system", "user", "assistant", "tool", "unknown"]
SourceKind = Literal["structural", "lexical"]

ROLES: Tuple[str, ...] = ("system", "user", "assistant", "tool", "unknown")


def normalize_role(value: object) -> Role:
    """Return ``value`` when it names a known role, otherwise ``unknown``."""
    if isinstance(value, str) and value.lower() in ROLES:
        return cast(Role, value.lower())
    return "unknown"


@dataclass
class PromptArtifact:
    """A text fragment believed to be fed to (or produced by) a language model."""

    role: Role
    text: str
    file_path: str
    line: int
    source_kind: SourceKind = "structural"
    label: Optional[str] = None
    function_name: Optional[str] = None
    call_signature: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "role": self.role,
            "text": self.text,
            "filePath": self.file_path,
            "line": self.line,
            "sourceKind": self.source_kind,
        }
        if self.label is not None:
            payload["label"] = self.label
        if self.function_name is not None:
            payload["functionName"] = self.function_name
        if self.call_signature is not None:
            payload["callSignature"] = self.call_signature
        return payload


@dataclass
class PromptKeywordHit:
    """Lexical heuristic match inside a single file."""

    file_path: str
    line: int
    match_label: str
    snippet: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filePath": self.file_path,
            "line": self.line,
            "matchLabel": self.match_label,
            "snippet": self.snippet,
        }


@dataclass
class SecretFinding:
    """Credential-shaped token spotted in a file."""

    match: str
    file_path: str
    line: int
    rule: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match": self.match,
            "filePath": self.file_path,
            "line": self.line,
            "rule": self.rule,
        }


@dataclass
class FileTreeNode:
    """Node of the display tree. Only ``dir`` nodes carry children."""

    name: str
    path: str
    type: str
    children: Optional[List["FileTreeNode"]] = None

    def count(self) -> int:
        """Return the number of nodes below this one."""
        if not self.children:
            return 0
        return sum(1 + child.count() for child in self.children)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"name": self.name, "path": self.path, "type": self.type}
        if self.type == "dir":
            payload["children"] = [child.to_dict() for child in self.children or []]
        return payload


@dataclass(frozen=True)
class ScanBudget:
    """Per-call limits bounding the cost of one scan."""

    max_files: int = 3000
    max_tree_nodes: int = 2000
    max_tree_depth: int = 6
    max_file_bytes: int = 1024 * 1024
    max_findings_per_file: int = 5
    max_findings_total: int = 200


@dataclass
class NarrativeFile:
    file_path: str
    count: int
    reasoning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"filePath": self.file_path, "count": self.count}
        if self.reasoning is not None:
            payload["reasoning"] = self.reasoning
        return payload


@dataclass
class NarrativeRedundancy:
    file_path: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {"filePath": self.file_path, "description": self.description}


@dataclass
class NarrativeAnalysis:
    """Structured reply from the narrative synthesis pass."""

    summary: str
    logic: Optional[str] = None
    files: List[NarrativeFile] = field(default_factory=list)
    redundancies: Optional[List[NarrativeRedundancy]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "summary": self.summary,
            "files": [item.to_dict() for item in self.files],
        }
        if self.logic is not None:
            payload["logic"] = self.logic
        if self.redundancies is not None:
            payload["redundancies"] = [item.to_dict() for item in self.redundancies]
        return payload


@dataclass(frozen=True)
class AggregatedResult:
    """Unified outcome of one scan. Built fresh per call and never mutated."""

    root: str
    structural_artifacts: Tuple[PromptArtifact, ...] = ()
    lexical_hits: Tuple[PromptKeywordHit, ...] = ()
    secrets: Tuple[SecretFinding, ...] = ()
    file_tree: Optional[FileTreeNode] = None
    narrative: Optional[NarrativeAnalysis] = None
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "root": self.root,
            "structuralArtifacts": [item.to_dict() for item in self.structural_artifacts],
            "lexicalHits": [item.to_dict() for item in self.lexical_hits],
            "secrets": [item.to_dict() for item in self.secrets],
            "fileTree": self.file_tree.to_dict() if self.file_tree is not None else None,
            "narrative": self.narrative.to_dict() if self.narrative is not None else None,
            "truncated": self.truncated,
        }


__all__ = [
    "AggregatedResult",
    "FileTreeNode",
    "NarrativeAnalysis",
    "NarrativeFile",
    "NarrativeRedundancy",
    "PromptArtifact",
    "PromptKeywordHit",
    "ROLES",
    "Role",
    "ScanBudget",
    "SecretFinding",
    "SourceKind",
    "normalize_role",
]
