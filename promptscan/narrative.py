"""Optional LLM-backed synthesis of how prompts are used across a repository."""

from __future__ import annotations

import json
from typing import Any, List, Optional, Sequence, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .llm.runner import LLMRunner
from .logging import get_logger, log_exception
from .models import (
    FileTreeNode,
    NarrativeAnalysis,
    NarrativeFile,
    NarrativeRedundancy,
    PromptArtifact,
    PromptKeywordHit,
)

MAX_HITS = 200
MAX_ARTIFACTS = 150
MAX_SNIPPET_CHARS = 400
MAX_TEXT_CHARS = 500
MAX_TREE_DEPTH = 3
MAX_TREE_PATHS = 400

_logger = get_logger("narrative")

SYSTEM_INSTRUCTION = " ".join(
    [
        "You are a senior code analyst.",
        "Given prompt artifacts and a file tree, synthesize a concise explanation of how prompts are used across the codebase.",
        "Focus on: (1) overall prompt flow/logic, (2) where prompts are defined/assembled, "
        "(3) how messages compose together, (4) redundancies or duplicates.",
        "Be conservative; do not hallucinate. Base claims on provided snippets and paths.",
        "Respond as JSON with keys: {summary: string, logic: string, files: [{filePath, count, reasoning?}], "
        "redundancies: [{filePath, description}]}.",
    ]
)


class _FileReply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file_path: str = Field(validation_alias=AliasChoices("filePath", "file_path", "path"), min_length=1)
    count: int = 0
    reasoning: Optional[str] = None

    @field_validator("count", mode="before")
    @classmethod
    def _lenient_count(cls, value: Any) -> int:
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            return 0

    @field_validator("reasoning", mode="before")
    @classmethod
    def _text_or_none(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None


class _RedundancyReply(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file_path: str = Field(validation_alias=AliasChoices("filePath", "file_path", "path"), min_length=1)
    description: str = ""


class _NarrativeReply(BaseModel):
    """Top-level reply shape. Only ``summary`` and ``files`` are required."""

    model_config = ConfigDict(extra="ignore")

    summary: str = Field(min_length=1)
    logic: Any = None
    files: List[Any]
    redundancies: Any = None


_ReplyItem = TypeVar("_ReplyItem", bound=BaseModel)


def _valid_items(model: Type[_ReplyItem], items: Sequence[Any]) -> List[_ReplyItem]:
    """Validate entries one by one; a malformed entry is dropped, not fatal."""
    valid: List[_ReplyItem] = []
    for item in items:
        try:
            valid.append(model.model_validate(item))
        except ValidationError as exc:
            _logger.debug("Dropping malformed narrative entry %r: %s", item, exc.errors()[0]["msg"])
    return valid


def flatten_file_tree(
    root: FileTreeNode | None, max_depth: int = MAX_TREE_DEPTH, max_items: int = MAX_TREE_PATHS
) -> List[str]:
    """Return pre-order node paths, bounded by depth and count."""
    if root is None:
        return []
    out: List[str] = []

    def _walk(node: FileTreeNode, depth: int) -> None:
        if len(out) >= max_items:
            return
        out.append(node.path)
        if depth >= max_depth or node.type != "dir":
            return
        for child in node.children or []:
            if len(out) >= max_items:
                break
            _walk(child, depth + 1)

    _walk(root, 0)
    return out


def build_context(
    hits: Sequence[PromptKeywordHit],
    artifacts: Sequence[PromptArtifact],
    tree: FileTreeNode | None,
) -> str:
    """Render the bounded user message sent to the model."""
    hit_payload = [
        {
            "filePath": hit.file_path,
            "line": hit.line,
            "label": hit.match_label,
            "snippet": hit.snippet[:MAX_SNIPPET_CHARS],
        }
        for hit in list(hits)[:MAX_HITS]
    ]
    artifact_payload = [
        {
            "role": artifact.role,
            "text": (artifact.text or "")[:MAX_TEXT_CHARS],
            "filePath": artifact.file_path,
            "line": artifact.line,
            "functionName": artifact.function_name,
            "callSignature": artifact.call_signature,
        }
        for artifact in list(artifacts)[:MAX_ARTIFACTS]
    ]
    paths = flatten_file_tree(tree)
    return (
        "CONTEXT:\n"
        f"- FILE_PATHS_SAMPLE: {json.dumps(paths)}\n"
        f"- PROMPT_HITS: {json.dumps(hit_payload)}\n"
        f"- PYTHON_PROMPTS: {json.dumps(artifact_payload)}\n"
    )


def parse_reply(content: str | None) -> NarrativeAnalysis | None:
    """Extract and validate the JSON object embedded in ``content``."""
    if not content:
        return None
    json_text = content
    first = content.find("{")
    last = content.rfind("}")
    if first != -1 and last > first:
        json_text = content[first : last + 1]
    try:
        data: Any = json.loads(json_text)
        reply = _NarrativeReply.model_validate(data)
    except (json.JSONDecodeError, ValidationError):
        return None

    redundancies = None
    if isinstance(reply.redundancies, list):
        redundancies = [
            NarrativeRedundancy(file_path=item.file_path, description=item.description)
            for item in _valid_items(_RedundancyReply, reply.redundancies)
        ]

    return NarrativeAnalysis(
        summary=reply.summary,
        logic=reply.logic if isinstance(reply.logic, str) else None,
        files=[
            NarrativeFile(file_path=item.file_path, count=item.count, reasoning=item.reasoning)
            for item in _valid_items(_FileReply, reply.files)
        ],
        redundancies=redundancies,
    )


class NarrativeSynthesizer:
    """Summarizes collected artifacts through an external text-generation service."""

    def __init__(self, runner: LLMRunner | None = None) -> None:
        self.runner = runner or LLMRunner()
        self.logger = _logger

    def synthesize(
        self,
        hits: Sequence[PromptKeywordHit],
        artifacts: Sequence[PromptArtifact],
        tree: FileTreeNode | None,
    ) -> NarrativeAnalysis | None:
        if not self.runner.configured:
            self.logger.debug("No API key configured; skipping narrative synthesis")
            return None

        context = build_context(hits, artifacts, tree)
        try:
            content = self.runner.run(context, system=SYSTEM_INSTRUCTION)
        except RuntimeError as exc:
            log_exception(self.logger, "Narrative synthesis request failed", exc)
            return None

        analysis = parse_reply(content)
        if analysis is None:
            self.logger.warning("Narrative synthesis reply did not match the expected shape")
        return analysis


__all__ = [
    "NarrativeSynthesizer",
    "SYSTEM_INSTRUCTION",
    "build_context",
    "flatten_file_tree",
    "parse_reply",
]
