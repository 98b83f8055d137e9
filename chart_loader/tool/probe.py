"""chart-loader probe action."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import Any, cast

from chart_loader.repo import HelmChartRepository


_LOGGER = logging.getLogger(__name__)


class ProbeAction:
    """chart-loader probe action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "probe",
                help="Check whether a URL is a Helm chart repository",
                description="Check for an index.yaml at the repository URL.",
            ),
        )
        args.add_argument(
            "repo",
            help="URL of the Helm chart repository",
            type=str,
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        repo: str,
        **kwargs: Any,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        async with HelmChartRepository() as repository:
            found = await repository.is_helm_repo(repo)
        if found:
            print(f"{repo} is a Helm chart repository")
        else:
            print(f"{repo} is not a Helm chart repository")
