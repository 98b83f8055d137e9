"""Common flags for commands that load a chart."""

from argparse import ArgumentParser


def add_chart_flags(args: ArgumentParser) -> None:
    """Add the positional repository and chart arguments and the version flag."""
    args.add_argument(
        "repo",
        help="URL of the Helm chart repository",
        type=str,
    )
    args.add_argument(
        "chart",
        help="Name of the chart in the repository",
        type=str,
    )
    args.add_argument(
        "--version",
        help="Exact version or version constraint, defaults to the latest version",
        type=str,
        default="",
    )
