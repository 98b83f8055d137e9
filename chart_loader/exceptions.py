"""Exceptions related to chart-loader."""

__all__ = [
    "ChartLoaderException",
    "RepositoryException",
    "ChartNotFoundError",
    "NoMatchingVersionError",
    "NoURLForVersionError",
    "DownloadFailedError",
    "NetworkError",
    "ArchiveCorruptError",
    "DecodeException",
    "SchemaDecodeError",
    "MetadataDecodeError",
    "ValuesDecodeError",
    "IndexDecodeError",
]


class ChartLoaderException(Exception):
    """Generic base exception used for this library."""


class RepositoryException(ChartLoaderException):
    """Raised when a chart repository can't satisfy a request."""


class ChartNotFoundError(RepositoryException):
    """Raised when a chart is not listed in the repository index."""

    def __init__(self, repo: str, chart: str) -> None:
        super().__init__(f"chart {chart} not found in repo {repo}")
        self.repo = repo
        self.chart = chart


class NoMatchingVersionError(RepositoryException):
    """Raised when no published version satisfies the requested version."""

    def __init__(self, version: str, chart: str | None = None) -> None:
        if chart:
            message = f"no version of chart {chart} matches {version!r}"
        else:
            message = f"no version matches {version!r}"
        super().__init__(message)
        self.version = version
        self.chart = chart


class NoURLForVersionError(RepositoryException):
    """Raised when an index entry has no download URL."""

    def __init__(self, repo: str, chart: str, version: str) -> None:
        super().__init__(
            f"no URL on version {version} of chart {chart} and repo {repo}"
        )
        self.repo = repo
        self.chart = chart
        self.version = version


class DownloadFailedError(RepositoryException):
    """Raised when an HTTP request returns a non-200 status."""

    def __init__(self, url: str, status: int, reason: str | None) -> None:
        super().__init__(
            f"HTTP request failed with status: {status} {reason or ''}".rstrip()
            + f" ({url})"
        )
        self.url = url
        self.status = status
        self.reason = reason


class NetworkError(RepositoryException):
    """Raised on a transport level failure talking to a repository."""


class ArchiveCorruptError(ChartLoaderException):
    """Raised when a chart archive can't be decompressed or read."""


class DecodeException(ChartLoaderException):
    """Raised when a chart document is not formatted as expected.

    The chart name and the chain of charts being resolved are kept as
    attributes so callers can report which subchart was at fault.
    """

    document = "document"

    def __init__(
        self, chart_name: str, detail: str, chart_path: list[str] | None = None
    ) -> None:
        self.chart_name = chart_name
        self.detail = detail
        self.chart_path = chart_path or []
        location = " > ".join(self.chart_path) if self.chart_path else chart_name
        super().__init__(f"Invalid {self.document} in chart {location}: {detail}")


class SchemaDecodeError(DecodeException):
    """Raised when values.schema.json is malformed."""

    document = "values.schema.json"


class MetadataDecodeError(DecodeException):
    """Raised when Chart.yaml is missing or malformed."""

    document = "Chart.yaml"


class ValuesDecodeError(DecodeException):
    """Raised when values.yaml is malformed."""

    document = "values.yaml"


class IndexDecodeError(DecodeException):
    """Raised when a repository index.yaml is malformed."""

    document = "index.yaml"
