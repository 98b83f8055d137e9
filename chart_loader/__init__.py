"""Loads Helm charts from chart repositories into resolved templates.

The main entry point is `chart_loader.repo.HelmChartRepository`.
"""

__all__ = [
    "archive",
    "cache",
    "chart",
    "config",
    "context",
    "exceptions",
    "fields",
    "manifest",
    "repo",
    "schema",
    "values",
    "versions",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
