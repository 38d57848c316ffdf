"""Tracker implementations."""

from dependency_checker.trackers.github import GitHubTracker

__all__ = ["GitHubTracker"]
