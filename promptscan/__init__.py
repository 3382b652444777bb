"""Prompt and credential inventory for source repositories."""

from .aggregator import Aggregator
from .config import ConfigError, ScanConfig, load_config
from .lexical import LexicalScanner, scan_text_for_prompt_keywords
from .models import (
    AggregatedResult,
    FileTreeNode,
    NarrativeAnalysis,
    PromptArtifact,
    PromptKeywordHit,
    ScanBudget,
    SecretFinding,
)
from .secrets import SecretScanner, scan_text_for_secrets
from .walker import DirectoryWalker

__version__ = "0.1.0"

__all__ = [
    "AggregatedResult",
    "Aggregator",
    "ConfigError",
    "DirectoryWalker",
    "FileTreeNode",
    "LexicalScanner",
    "NarrativeAnalysis",
    "PromptArtifact",
    "PromptKeywordHit",
    "ScanBudget",
    "ScanConfig",
    "SecretFinding",
    "SecretScanner",
    "load_config",
    "scan_text_for_prompt_keywords",
    "scan_text_for_secrets",
]
