"""Paragraph confidence scoring."""

from .confidence import ConfidenceScorer, HeuristicConfidenceScorer

__all__ = ["ConfidenceScorer", "HeuristicConfidenceScorer"]
