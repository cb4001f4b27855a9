"""
Exception classes for samplereader.

A single failure type, :class:`SampleReaderError`, tagged with an
:class:`ErrorKind` and carrying the structured data relevant to that kind.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from itertools import chain

from pydantic import BaseModel, ConfigDict, ValidationError


class SampleReaderException(Exception):
    """
    Base exception class for all samplereader-related errors.

    This serves as the root exception that all other samplereader exceptions
    inherit from, allowing users to catch all samplereader-specific errors with
    a single except clause.
    """


class ErrorKind(str, Enum):
    """Kinds of configuration failures."""

    MISSING_PARAMETER = "missing_parameter"
    INVALID_PARAMETER = "invalid_parameter"
    FILE_NOT_FOUND = "file_not_found"
    EMPTY_SAMPLE_INFO = "empty_sample_info"
    EMPTY_PROCESS_INFO = "empty_process_info"
    EMPTY_SAMPLE_READER = "empty_sample_reader"


class MissingFiles(BaseModel):
    """
    Missing paths attributed to the tag that referenced them.

    Attributes:
        tag: Tag of the sample (or process) the paths belong to
        paths: Resolved paths that do not exist, in configuration order
    """

    model_config = ConfigDict(frozen=True)

    tag: str
    paths: tuple[str, ...] = ()

    def __str__(self) -> str:
        return f"{self.tag}: {quote_paths(self.paths)}"


def quote_paths(paths: Iterable[str]) -> str:
    """Render paths as ``'a', 'b'``."""
    return ", ".join(f"'{path}'" for path in paths)


class SampleReaderError(SampleReaderException):
    """
    Raised when a sample configuration cannot be turned into a valid tree.

    Attributes:
        kind: What went wrong
        parameter: Name of the offending JSON field, for the parameter kinds
        missing: Missing files per tag, for the file kinds
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str = "",
        *,
        parameter: str | None = None,
        missing: Iterable[MissingFiles] = (),
    ) -> None:
        self.kind = kind
        self.parameter = parameter
        self.missing = tuple(missing)
        if not message:
            message = quote_paths(self.paths) or kind.value.replace("_", " ")
        super().__init__(message)

    @property
    def paths(self) -> tuple[str, ...]:
        """Every missing path carried by this error, in order."""
        return tuple(chain.from_iterable(record.paths for record in self.missing))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.name}, {str(self)!r})"

    @classmethod
    def missing_parameter(cls, parameter: str, where: str = "") -> SampleReaderError:
        """Build a MISSING_PARAMETER error naming ``parameter``."""
        location = f" in {where}" if where else ""
        return cls(
            ErrorKind.MISSING_PARAMETER,
            f"Missing required parameter '{parameter}'{location}",
            parameter=parameter,
        )

    @classmethod
    def from_validation_error(
        cls, exc: ValidationError, where: str = ""
    ) -> SampleReaderError:
        """
        Translate the first pydantic validation error into a SampleReaderError.

        Missing fields take precedence over invalid values so that an absent
        ``tag`` is always reported as such.

        Args:
            exc: The pydantic error raised while validating a JSON object
            where: Short description of the object being validated

        Returns:
            SampleReaderError: MISSING_PARAMETER or INVALID_PARAMETER
        """
        errors = exc.errors()
        missing = [error for error in errors if error["type"] == "missing"]
        error = (missing or errors)[0]
        parameter = ".".join(str(part) for part in error["loc"])
        if missing:
            return cls.missing_parameter(parameter, where)

        location = f" in {where}" if where else ""
        return cls(
            ErrorKind.INVALID_PARAMETER,
            f"Invalid parameter '{parameter}'{location}: {error['msg']}",
            parameter=parameter,
        )


__all__ = (
    "ErrorKind",
    "MissingFiles",
    "SampleReaderError",
    "SampleReaderException",
    "quote_paths",
)
