"""Scan pipeline merging structural, lexical and secret findings into one result."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

from .config import ScanConfig
from .extract.structural import StructuralExtractor
from .lexical import LexicalScanner
from .llm.runner import LLMRunner
from .logging import get_logger, log_exception
from .models import (
    AggregatedResult,
    FileTreeNode,
    PromptArtifact,
    PromptKeywordHit,
    ScanBudget,
    SecretFinding,
)
from .narrative import NarrativeSynthesizer
from .secrets import SecretScanner
from .walker import DEFAULT_IGNORE_DIRS, DirectoryWalker, FileListing, TreeListing

T = TypeVar("T")

_BINARY_SNIFF_BYTES = 8192


@dataclass
class _FileScanOutcome:
    secrets: List[SecretFinding] = field(default_factory=list)
    hits: List[PromptKeywordHit] = field(default_factory=list)
    truncated: bool = False


class Aggregator:
    """Runs every scan stage over a materialized directory.

    A failing stage contributes an empty collection (or ``None``) and the
    remaining stages still run; only an invalid target directory is raised
    to the caller.
    """

    def __init__(
        self,
        config: ScanConfig | None = None,
        *,
        walker: DirectoryWalker | None = None,
        secret_scanner: SecretScanner | None = None,
        lexical_scanner: LexicalScanner | None = None,
        structural_extractor: StructuralExtractor | None = None,
        narrative: NarrativeSynthesizer | None = None,
    ) -> None:
        self.config = config or ScanConfig()
        self.walker = walker or DirectoryWalker(
            ignore_dirs=DEFAULT_IGNORE_DIRS | set(self.config.ignore_dirs),
            exclude_substrings=self.config.exclude_paths,
        )
        self.secret_scanner = secret_scanner or SecretScanner()
        self.lexical_scanner = lexical_scanner or LexicalScanner()
        if structural_extractor is None:
            extractor_cfg = self.config.extractor
            structural_extractor = StructuralExtractor(
                extractor_cfg.python,
                timeout=extractor_cfg.timeout or StructuralExtractor.DEFAULT_TIMEOUT,
            )
        self.structural_extractor = structural_extractor
        self._narrative = narrative
        self.logger = get_logger("aggregator")

    def run(
        self,
        directory: str | Path,
        budget: ScanBudget | None = None,
        use_narrative: bool = False,
        *,
        cancel_event: threading.Event | None = None,
    ) -> AggregatedResult:
        """Scan ``directory`` and return the unified result."""
        root = self._validate_root(directory)
        budget = budget or self.config.budget
        self.logger.info("Starting scan of %s", root)

        listing = self._run_stage(
            "file listing",
            lambda: self.walker.list_files(root, budget.max_files),
            FileListing(files=[]),
        )
        files = listing.files
        truncated = listing.truncated
        self.logger.debug("Walker listed %d files", len(files))

        python_files = [path for path in files if path.endswith(".py")]
        structural: List[PromptArtifact] = []
        if python_files:
            structural = self._run_stage(
                "structural extraction",
                lambda: self.structural_extractor.extract(root, python_files),
                [],
            )
        self.logger.debug("Structural extraction produced %d artifacts", len(structural))

        outcome = self._run_stage(
            "file scan",
            lambda: self._scan_files(root, files, budget, cancel_event),
            _FileScanOutcome(),
        )
        truncated = truncated or outcome.truncated

        tree_listing: Optional[TreeListing] = self._run_stage(
            "file tree",
            lambda: self.walker.build_tree(root, budget.max_tree_depth, budget.max_tree_nodes),
            None,
        )
        tree: Optional[FileTreeNode] = None
        if tree_listing is not None:
            tree = tree_listing.root
            truncated = truncated or tree_listing.truncated

        narrative = None
        if use_narrative:
            narrative = self._run_stage(
                "narrative synthesis",
                lambda: self._resolve_narrative().synthesize(outcome.hits, structural, tree),
                None,
            )

        self.logger.info(
            "Scan finished: %d structural artifacts, %d lexical hits, %d secrets",
            len(structural),
            len(outcome.hits),
            len(outcome.secrets),
        )
        return AggregatedResult(
            root=str(root),
            structural_artifacts=tuple(structural),
            lexical_hits=tuple(outcome.hits),
            secrets=tuple(outcome.secrets),
            file_tree=tree,
            narrative=narrative,
            truncated=truncated,
        )

    @staticmethod
    def _validate_root(directory: str | Path) -> Path:
        root = Path(directory).expanduser().resolve()
        if not root.exists():
            raise FileNotFoundError(f"Repository path not found: {directory}")
        if not root.is_dir():
            raise NotADirectoryError(f"Repository path is not a directory: {directory}")
        if not os.access(root, os.R_OK | os.X_OK):
            raise PermissionError(f"Repository path is not readable: {directory}")
        return root

    def _scan_files(
        self,
        root: Path,
        files: List[str],
        budget: ScanBudget,
        cancel_event: threading.Event | None,
    ) -> _FileScanOutcome:
        outcome = _FileScanOutcome()
        per_file = budget.max_findings_per_file
        total = budget.max_findings_total

        for rel_path in files:
            if cancel_event is not None and cancel_event.is_set():
                self.logger.info("Scan cancelled; returning partial results")
                outcome.truncated = True
                break
            if len(outcome.secrets) >= total and len(outcome.hits) >= total:
                outcome.truncated = True
                break

            text = self._read_text(root / rel_path, budget.max_file_bytes)
            if text is None:
                continue

            if len(outcome.secrets) < total:
                found = self.secret_scanner.scan(text, rel_path)
                keep = min(per_file, total - len(outcome.secrets))
                outcome.truncated = outcome.truncated or len(found) > keep
                outcome.secrets.extend(found[:keep])

            if len(outcome.hits) < total:
                hits = self.lexical_scanner.scan(text, rel_path)
                keep = min(per_file, total - len(outcome.hits))
                outcome.truncated = outcome.truncated or len(hits) > keep
                outcome.hits.extend(hits[:keep])

        return outcome

    def _read_text(self, path: Path, max_bytes: int) -> Optional[str]:
        try:
            if path.stat().st_size > max_bytes:
                self.logger.debug("Skipping %s: larger than %d bytes", path, max_bytes)
                return None
            data = path.read_bytes()
        except OSError as exc:
            self.logger.debug("Skipping unreadable file %s: %s", path, exc)
            return None
        if b"\0" in data[:_BINARY_SNIFF_BYTES]:
            return None
        return data.decode("utf-8", errors="replace")

    def _resolve_narrative(self) -> NarrativeSynthesizer:
        if self._narrative is None:
            llm_cfg = self.config.llm
            kwargs: dict[str, object] = {}
            if llm_cfg is not None:
                if llm_cfg.model:
                    kwargs["model"] = llm_cfg.model
                if llm_cfg.base_url:
                    kwargs["base_url"] = llm_cfg.base_url
                if llm_cfg.api_key:
                    kwargs["api_key"] = llm_cfg.api_key
                if llm_cfg.temperature is not None:
                    kwargs["temperature"] = llm_cfg.temperature
                if llm_cfg.max_tokens is not None:
                    kwargs["max_tokens"] = llm_cfg.max_tokens
                if llm_cfg.request_timeout is not None:
                    kwargs["request_timeout"] = llm_cfg.request_timeout
            self._narrative = NarrativeSynthesizer(LLMRunner(**kwargs))  # type: ignore[arg-type]
        return self._narrative

    def _run_stage(self, name: str, func: Callable[[], T], default: T) -> T:
        try:
            return func()
        except Exception as exc:
            log_exception(self.logger, f"{name.capitalize()} failed", exc)
            return default


__all__ = ["Aggregator"]
