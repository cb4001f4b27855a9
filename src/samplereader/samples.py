"""
Sample implementations.

Provides the SampleInfo class describing one physically produced sample:
its normalization constants and the resolved, existing files holding its
events.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any

from pydantic import (
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    ValidationInfo,
    model_validator,
)

from samplereader.chain import DEFAULT_TREE, Chain
from samplereader.collections import TaggedCollection, TaggedModel
from samplereader.exceptions import ErrorKind, MissingFiles, SampleReaderError

log = logging.getLogger(__name__)


class LoadMode(str, Enum):
    """
    How construction reacts to files that do not exist.

    STRICT fails on the first gap. LENIENT drops what is missing, records it
    for diagnostics and only fails when nothing is left at a level.
    """

    STRICT = "strict"
    LENIENT = "lenient"


def resolve_path(fragment: str, base_dir: str = "", suffix: str = "") -> str:
    """Resolve a file fragment to ``base_dir + fragment + suffix``."""
    return f"{base_dir}{fragment}{suffix}"


class SampleInfo(TaggedModel):
    """
    One sample: normalization constants plus the files holding its events.

    Built from a JSON object with :meth:`from_json`. Every file fragment is
    resolved against the base directory and suffix given in the validation
    context, then checked for existence. Only existing paths are kept.

    Attributes:
        tag: Identifier of the sample within its process
        cross_section: Physical cross-section (JSON ``crosssection``)
        branching_ratio: Branching ratio in [0, 1] (JSON ``branchingratio``)
        split: Number of equal sub-jobs the sample was produced in
        files: File fragments as written in the configuration
        base_dir: Prefix used to resolve fragments
        suffix: Suffix used to resolve fragments
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    cross_section: float = Field(..., alias="crosssection", gt=0)
    branching_ratio: float = Field(default=1.0, alias="branchingratio", ge=0, le=1)
    split: int = Field(default=1, ge=1)
    files: tuple[str, ...] = Field(default=())
    base_dir: str = Field(default="", repr=False)
    suffix: str = Field(default="", repr=False)

    _file_paths: tuple[str, ...] = PrivateAttr(default=())
    _missing_files: tuple[str, ...] = PrivateAttr(default=())

    @model_validator(mode="before")
    @classmethod
    def inject_context(cls, data: Any, info: ValidationInfo) -> Any:
        """Take base_dir and suffix from the validation context when given."""
        if isinstance(data, Mapping) and info.context:
            data = dict(data)
            for key in ("base_dir", "suffix"):
                if key in info.context:
                    data[key] = str(info.context[key])
        return data

    @model_validator(mode="after")
    def resolve_files(self, info: ValidationInfo) -> SampleInfo:
        """Resolve fragments to paths and keep only the existing ones."""
        mode = LoadMode((info.context or {}).get("mode", LoadMode.LENIENT))

        found: list[str] = []
        missing: list[str] = []
        for fragment in self.files:
            path = resolve_path(fragment, self.base_dir, self.suffix)
            (found if os.path.exists(path) else missing).append(path)

        if not found:
            raise SampleReaderError(
                ErrorKind.EMPTY_SAMPLE_INFO,
                missing=[MissingFiles(tag=self.tag, paths=tuple(missing))],
            )
        if missing:
            if mode is LoadMode.STRICT:
                raise SampleReaderError(
                    ErrorKind.FILE_NOT_FOUND,
                    missing=[MissingFiles(tag=self.tag, paths=tuple(missing))],
                )
            for path in missing:
                log.warning("Sample '%s': file not found: %s", self.tag, path)

        self._file_paths = tuple(found)
        self._missing_files = tuple(missing)
        return self

    @classmethod
    def from_json(
        cls,
        spec: Mapping[str, Any],
        base_dir: str | os.PathLike[str] = "",
        suffix: str = "",
        *,
        mode: LoadMode = LoadMode.LENIENT,
    ) -> SampleInfo:
        """
        Build a sample from its JSON object.

        Args:
            spec: Parsed JSON object of the sample
            base_dir: Prefix prepended to every file fragment
            suffix: Suffix appended to every file fragment
            mode: How to react to missing files

        Returns:
            SampleInfo: The validated sample

        Raises:
            SampleReaderError: MISSING_PARAMETER or INVALID_PARAMETER for a bad
                JSON object, EMPTY_SAMPLE_INFO if no file exists, and
                FILE_NOT_FOUND in strict mode if any file is missing
        """
        where = f"sample '{spec['tag']}'" if "tag" in spec else "sample"
        try:
            return cls.model_validate(
                spec,
                context={"base_dir": str(base_dir), "suffix": suffix, "mode": mode},
            )
        except ValidationError as exc:
            raise SampleReaderError.from_validation_error(exc, where) from None

    @property
    def file_paths(self) -> tuple[str, ...]:
        """Resolved paths of the existing files, in configuration order."""
        return self._file_paths

    @property
    def missing_files(self) -> tuple[str, ...]:
        """Resolved paths that did not exist at construction."""
        return self._missing_files

    @property
    def normalization(self) -> float:
        """Per-event scale: cross_section * branching_ratio / split."""
        return self.cross_section * self.branching_ratio / self.split

    def get_all_files(self) -> list[str]:
        """Copy of the resolved file paths."""
        return list(self._file_paths)

    def get_chain(self, tree: str = DEFAULT_TREE) -> Chain:
        """Chain over this sample's files."""
        return Chain(self._file_paths, tree)

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self._file_paths)

    def __len__(self) -> int:
        return len(self._file_paths)


class Samples(TaggedCollection[SampleInfo]):
    """
    Ordered samples of one process, addressable by tag or index.
    """


__all__ = ("LoadMode", "SampleInfo", "Samples", "resolve_path")
