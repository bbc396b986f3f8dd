# src/__init__.py (v1)
"""wireflow: incremental execution pipeline for LLM workflows."""

from wireflow.version import __version__

__all__ = ["__version__"]
