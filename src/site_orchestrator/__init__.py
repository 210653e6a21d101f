"""
site-orchestrator — plugin-driven static site bootstrap.

Purpose
- Package root. Loads a plugin set, reconciles the build cache, runs the fixed
  bootstrap phase sequence, and maintains the page registry plugins populate.

Functional requirements
- No side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
