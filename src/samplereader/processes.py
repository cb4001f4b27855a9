"""
Process implementations.

Provides the ProcessInfo class: a named, styled group of samples making up
one physical process, with yields and histograms aggregated over its samples.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping, Sequence
from itertools import chain
from typing import Any

import hist
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from samplereader.chain import DEFAULT_TREE, Chain
from samplereader.collections import TaggedCollection, TaggedModel
from samplereader.exceptions import ErrorKind, MissingFiles, SampleReaderError
from samplereader.histograms import make_hist
from samplereader.samples import LoadMode, SampleInfo, Samples
from samplereader.uncertainty import ValueWithUncertainty

log = logging.getLogger(__name__)


class ProcessStyle(BaseModel):
    """
    Drawing attributes of a process, using ROOT color and style codes.

    Carried along with histograms for the plotting code; not interpreted here.
    """

    model_config = ConfigDict(frozen=True)

    color: int = 1
    lcolor: int = 1
    lwidth: int = 1
    lstyle: int = 1
    fill: int = 1001
    marker: int = 20
    mcolor: int = 1


class ProcessInfo(TaggedModel):
    """
    One physical process (e.g. "ttbar") made of one or more samples.

    Attributes:
        tag: Identifier of the process
        label: Human-readable name, used as histogram title
        is_data: Process is collision data (JSON ``isdata``)
        is_signal: Process is a signal hypothesis (JSON ``issignal``)
        is_fast_sim: Samples come from fast simulation (JSON ``isfastsim``)
        superimpose: Drawn as a line over the stack (JSON ``spimpose``)
        style: Drawing attributes, from the flat styling keys of the JSON
        samples: The samples of the process, in configuration order
        missing_files: Files and samples dropped while loading
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    label: str
    is_data: bool = Field(default=False, alias="isdata")
    is_signal: bool = Field(default=False, alias="issignal")
    is_fast_sim: bool = Field(default=False, alias="isfastsim")
    superimpose: bool = Field(default=False, alias="spimpose")
    style: ProcessStyle = Field(default_factory=ProcessStyle, repr=False)

    samples: Samples = Field(default_factory=Samples, repr=False)
    missing_files: tuple[MissingFiles, ...] = Field(default=(), repr=False)

    @model_validator(mode="before")
    @classmethod
    def collect_style(cls, data: Any) -> Any:
        """Gather the flat styling keys of the JSON object into ``style``."""
        if isinstance(data, Mapping) and "style" not in data:
            data = dict(data)
            data["style"] = {
                key: data.pop(key) for key in ProcessStyle.model_fields if key in data
            }
        return data

    @classmethod
    def from_json(
        cls,
        spec: Mapping[str, Any],
        base_dir: str | os.PathLike[str] = "",
        suffix: str = "",
        *,
        mode: LoadMode = LoadMode.LENIENT,
    ) -> ProcessInfo:
        """
        Build a process and its samples from the process JSON object.

        Every sample is resolved with the same base directory and suffix. In
        lenient mode samples without any existing file are dropped and
        recorded in ``missing_files``. In strict mode the first gap fails the
        process, unless no sample has a file at all.

        Args:
            spec: Parsed JSON object of the process, with its ``samples`` array
            base_dir: Prefix prepended to every file fragment
            suffix: Suffix appended to every file fragment
            mode: How to react to missing files

        Returns:
            ProcessInfo: The validated process

        Raises:
            SampleReaderError: MISSING_PARAMETER or INVALID_PARAMETER for a bad
                JSON object, EMPTY_PROCESS_INFO (with every missing path) if no
                sample is left, and the first sample gap in strict mode
        """
        where = f"process '{spec['tag']}'" if "tag" in spec else "process"
        header = {key: value for key, value in spec.items() if key != "samples"}
        try:
            process = cls.model_validate(header)
        except ValidationError as exc:
            raise SampleReaderError.from_validation_error(exc, where) from None

        if "samples" not in spec:
            raise SampleReaderError.missing_parameter("samples", where)
        raw_samples = spec["samples"]
        if not isinstance(raw_samples, Sequence) or isinstance(raw_samples, str):
            raise SampleReaderError(
                ErrorKind.INVALID_PARAMETER,
                f"Invalid parameter 'samples' in {where}: expected an array",
                parameter="samples",
            )

        samples: list[SampleInfo] = []
        missing: list[MissingFiles] = []
        first_gap: SampleReaderError | None = None
        for raw in raw_samples:
            if not isinstance(raw, Mapping):
                raise SampleReaderError(
                    ErrorKind.INVALID_PARAMETER,
                    f"Invalid parameter 'samples' in {where}: expected objects, got {raw!r}",
                    parameter="samples",
                )
            try:
                sample = SampleInfo.from_json(raw, base_dir, suffix, mode=mode)
            except SampleReaderError as exc:
                if exc.kind is ErrorKind.FILE_NOT_FOUND and first_gap is not None:
                    raise first_gap from None
                if exc.kind is not ErrorKind.EMPTY_SAMPLE_INFO:
                    raise
                if mode is LoadMode.STRICT:
                    first_gap = first_gap or exc
                else:
                    log.warning(
                        "Process '%s': dropping sample without files: %s", process.tag, exc
                    )
                missing.extend(exc.missing)
                continue

            samples.append(sample)
            if sample.missing_files:
                missing.append(MissingFiles(tag=sample.tag, paths=sample.missing_files))

        # no surviving sample makes an empty process in either mode
        if not samples:
            if not raw_samples:
                raise SampleReaderError(
                    ErrorKind.EMPTY_PROCESS_INFO,
                    f"Process '{process.tag}' has no samples",
                    missing=[MissingFiles(tag=process.tag)],
                )
            raise SampleReaderError(ErrorKind.EMPTY_PROCESS_INFO, missing=missing)
        if first_gap is not None:
            raise first_gap

        return process.model_copy(
            update={"samples": Samples(tuple(samples)), "missing_files": tuple(missing)}
        )

    def get_all_files(self) -> list[str]:
        """Files of every sample, flattened in sample order."""
        return list(chain.from_iterable(self.samples))

    def get_chain(self, tree: str = DEFAULT_TREE) -> Chain:
        """Chain over every file of the process."""
        return Chain(self.get_all_files(), tree)

    def get_hist(
        self,
        variable: str,
        selection: str,
        weight: str,
        nbins: int,
        low: float,
        high: float,
        *,
        tree: str = DEFAULT_TREE,
    ) -> hist.Hist:
        """
        Normalized distribution of ``variable`` summed over the samples.

        Every selected event is weighted by ``weight`` times the normalization
        (cross-section x branching ratio / split) of the sample it comes from.

        Args:
            variable: Expression to histogram
            selection: Selection expression, empty for all events
            weight: Per-event weight expression, empty for unit weights
            nbins: Number of bins
            low: Lower edge of the histogram
            high: Upper edge of the histogram
            tree: TTree name inside the sample files

        Returns:
            hist.Hist: Weighted histogram named after the process tag, titled
            with its label and carrying its style as metadata
        """
        h = make_hist(self.tag, self.label, variable, nbins, low, high, metadata=self.style)
        for sample in self.samples:
            log.debug(
                "Process '%s': filling '%s' from sample '%s' (scale %g)",
                self.tag,
                variable,
                sample.tag,
                sample.normalization,
            )
            sample.get_chain(tree).fill(
                h, variable, selection, weight, scale=sample.normalization
            )
        return h

    def get_yield(
        self, selection: str, weight: str, *, tree: str = DEFAULT_TREE
    ) -> ValueWithUncertainty:
        """
        Normalized yield of the selected events, summed over the samples.

        Samples are independent, so their uncertainties add in quadrature.
        """
        total = ValueWithUncertainty()
        for sample in self.samples:
            sum_w, sum_w2 = sample.get_chain(tree).sum_weights(selection, weight)
            partial = ValueWithUncertainty.from_sums(sum_w, sum_w2) * sample.normalization
            log.debug("Process '%s': sample '%s' yields %s", self.tag, sample.tag, partial)
            total += partial
        return total

    def __iter__(self) -> Iterator[SampleInfo]:  # type: ignore[override]
        return iter(self.samples)

    def __len__(self) -> int:
        return len(self.samples)


class Processes(TaggedCollection[ProcessInfo]):
    """
    Ordered processes of a reader, addressable by tag or index.
    """


__all__ = ("ProcessInfo", "ProcessStyle", "Processes")
