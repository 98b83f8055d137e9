"""chart-loader values action."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import Any, cast

from chart_loader.repo import HelmChartRepository

from .common import add_chart_flags
from .format import FORMATTERS


_LOGGER = logging.getLogger(__name__)


class ValuesAction:
    """chart-loader values action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "values",
                help="Print the merged default values of a chart",
                description=(
                    "Print the default values of a chart merged with the defaults "
                    "of all of its dependencies."
                ),
            ),
        )
        add_chart_flags(args)
        args.add_argument(
            "--output",
            "-o",
            choices=list(FORMATTERS),
            default="yaml",
            help="Output format of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        repo: str,
        chart: str,
        version: str,
        output: str,
        **kwargs: Any,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        async with HelmChartRepository() as repository:
            initial_values = await repository.load_helm_chart_initial_values(
                repo, chart, version
            )
        FORMATTERS[output]().print(initial_values)
