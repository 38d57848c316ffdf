"""Dependency checker for GitHub issues and pull requests."""

__version__ = "1.0.0"
