"""ipmrepo exception hierarchy.

Parsers raise ``MalformedInput`` subclasses, adapters raise ``SourceUnavailable``,
and the directory pipelines raise ``Fatal``. Aggregate operations collect the
individual failures into a ``PartialFailure`` instead of stopping at the first one.
"""

from collections.abc import Sequence
from pathlib import Path


class IpmRepoError(Exception):
    """Base exception for all ipmrepo errors."""


class NotFound(IpmRepoError):
    """An expected file, directory, or package type is absent."""


class MalformedInput(IpmRepoError):
    """Control text, a dependency token, a version, or a manifest could not be parsed."""


class MalformedConstraint(MalformedInput):
    """A dependency alternative or version constraint could not be parsed."""


class MissingField(MalformedInput):
    """A required control field is absent from a paragraph."""

    def __init__(self, field: str) -> None:
        super().__init__(f"'{field}' field not found in control paragraph")
        self.field = field


class SourceUnavailable(IpmRepoError):
    """A repository source could not be fetched after exhausting its fallbacks."""

    def __init__(self, message: str, causes: Sequence[BaseException] = ()) -> None:
        super().__init__(message)
        self.causes = list(causes)

    def __str__(self) -> str:
        message = super().__str__()
        if not self.causes:
            return message
        return f"{message} ({len(self.causes)} cause(s): {'; '.join(str(c) for c in self.causes)})"


class PartialFailure(IpmRepoError):
    """An aggregate operation finished but skipped one or more parts."""

    def __init__(self, message: str, causes: Sequence[BaseException]) -> None:
        super().__init__(message)
        self.causes = list(causes)


class BuildError(IpmRepoError):
    """The project build tool exited unsuccessfully or could not be run."""

    def __init__(self, message: str, *, command: Sequence[str] = (), stderr: str = "") -> None:
        super().__init__(message)
        self.command = list(command)
        self.stderr = stderr


class Fatal(IpmRepoError):
    """An unrecoverable failure during conversion or index building."""

    def __init__(self, step: str, directory: Path, message: str) -> None:
        super().__init__(f"{step} failed in {directory}: {message}")
        self.step = step
        self.directory = directory
