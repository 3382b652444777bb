"""Structural (syntax-tree) prompt extraction."""

from .structural import StructuralExtractor

__all__ = ["StructuralExtractor"]
