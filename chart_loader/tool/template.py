"""chart-loader template action.

Loads a chart with all of its dependencies and prints a summary of the
resolved template tree. The render templates and CRDs can also be written out
to a directory, one subdirectory per chart:

```
$ chart-loader template https://charts.example.com podinfo --output-dir out/
```
"""

import logging
import pathlib
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import Any, cast

import aiofiles
import aiofiles.os

from chart_loader.manifest import ChartFile, Template
from chart_loader.repo import HelmChartRepository

from .common import add_chart_flags
from .format import FORMATTERS, PrintFormatter


_LOGGER = logging.getLogger(__name__)

DEFAULT_TABLE_KEYS = ["chart", "version", "templates", "crds", "files"]


def template_summary(template: Template) -> dict[str, Any]:
    """Return a printable summary of a template and its dependencies."""
    return {
        "name": template.name,
        "version": template.version,
        "resolved_version": template.resolved_version,
        "icon_url": template.icon_url,
        "templates": [f.name for f in template.templates],
        "crds": [f.name for f in template.crds],
        "files": [f.name for f in template.files],
        "dependencies": [template_summary(dep) for dep in template.dependencies],
    }


def template_rows(template: Template, depth: int = 0) -> list[dict[str, Any]]:
    """Return one table row per chart in the template tree."""
    rows = [
        {
            "chart": ("  " * depth) + template.name,
            "version": template.resolved_version or "-",
            "templates": len(template.templates),
            "crds": len(template.crds),
            "files": len(template.files),
        }
    ]
    for dep in template.dependencies:
        rows.extend(template_rows(dep, depth + 1))
    return rows


async def _write_file(output_dir: pathlib.Path, chart_file: ChartFile) -> None:
    path = (output_dir / chart_file.name).resolve()
    if not path.is_relative_to(output_dir.resolve()):
        _LOGGER.warning(
            "Skipping file outside of output directory: %s", chart_file.name
        )
        return
    await aiofiles.os.makedirs(path.parent, exist_ok=True)
    async with aiofiles.open(path, mode="wb") as f:
        await f.write(chart_file.data)


async def export_template(template: Template, output_dir: pathlib.Path) -> int:
    """Write the templates and CRDs of the template tree to a directory.

    Dependencies are written below `charts/<name>/` of their parent. Returns
    the number of files written.
    """
    chart_dir = output_dir / template.name
    count = 0
    for chart_file in template.templates + template.crds:
        await _write_file(chart_dir, chart_file)
        count += 1
    for dep in template.dependencies:
        count += await export_template(dep, chart_dir / "charts")
    return count


class TemplateAction:
    """chart-loader template action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "template",
                help="Load a chart and its dependencies",
                description=(
                    "Resolve a chart version, load the chart with all of its "
                    "dependencies and print the resolved template tree."
                ),
            ),
        )
        add_chart_flags(args)
        args.add_argument(
            "--output",
            "-o",
            choices=["table"] + list(FORMATTERS),
            default="table",
            help="Output format of the command",
        )
        args.add_argument(
            "--output-dir",
            type=pathlib.Path,
            default=None,
            help="Write the templates and CRDs of every chart below this directory",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        repo: str,
        chart: str,
        version: str,
        output: str,
        output_dir: pathlib.Path | None = None,
        **kwargs: Any,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        async with HelmChartRepository() as repository:
            template = await repository.load_helm_chart(repo, chart, version)

        if output_dir is not None:
            count = await export_template(template, output_dir)
            _LOGGER.info("Wrote %d files to %s", count, output_dir)

        if output == "table":
            PrintFormatter(DEFAULT_TABLE_KEYS).print(template_rows(template))
            return
        FORMATTERS[output]().print(template_summary(template))
