"""Evidence integrity pipeline: citation verification, claim linking and review triage."""

__version__ = "0.1.0"
