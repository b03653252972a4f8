"""
polyinstall — cross-platform package installation orchestrator.

Sequences preflight checks, resolves the package manager for a project,
installs packages one at a time with automatic privilege elevation, and
reports a structured result for every run.
"""

__version__ = "0.1.0"
