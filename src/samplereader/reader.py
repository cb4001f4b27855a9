"""
Sample configuration reader.

Provides the SampleReader class: every process of one JSON sample
configuration, with yields, histograms and stacks aggregated over them and
category views selecting data, simulated background or simulated signal.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Callable, Iterator, Mapping, Sequence
from itertools import chain
from pathlib import Path
from typing import Any, TextIO

import hist
from pydantic import BaseModel, ConfigDict, Field

from samplereader.chain import DEFAULT_TREE, Chain
from samplereader.exceptions import ErrorKind, MissingFiles, SampleReaderError
from samplereader.histograms import add_into, make_hist, make_stack
from samplereader.processes import ProcessInfo, Processes
from samplereader.samples import LoadMode
from samplereader.uncertainty import ValueWithUncertainty

log = logging.getLogger(__name__)


class SampleReader(BaseModel):
    """
    Processes loaded from one JSON sample configuration.

    The reader is the query surface for downstream code: it aggregates
    normalized yields and histograms over its processes, and hands out
    category views (data, simulated background, simulated signal, all
    simulation) that share its process records.

    Attributes:
        input_file: JSON file the reader was loaded from, if any
        base_dir: Prefix used to resolve every sample file
        suffix: Suffix used to resolve every sample file
        tree: TTree name read from every sample file
        mode: How missing files were handled while loading
        processes: The processes, in configuration order
        rejected: Processes dropped while loading, with their missing files
    """

    model_config = ConfigDict(frozen=True)

    input_file: str = ""
    base_dir: str = ""
    suffix: str = ""
    tree: str = DEFAULT_TREE
    mode: LoadMode = LoadMode.LENIENT
    processes: Processes = Field(default_factory=Processes)
    rejected: tuple[MissingFiles, ...] = Field(default=(), repr=False)

    @classmethod
    def load(
        cls,
        path: str | os.PathLike[str],
        base_dir: str | os.PathLike[str] = "",
        suffix: str = "",
        *,
        tree: str = DEFAULT_TREE,
        mode: LoadMode = LoadMode.LENIENT,
    ) -> SampleReader:
        """
        Load a reader from a JSON sample configuration file.

        Args:
            path: Path to the JSON file
            base_dir: Prefix prepended to every file fragment
            suffix: Suffix appended to every file fragment
            tree: TTree name read from every sample file
            mode: How to react to missing files

        Returns:
            SampleReader: The loaded reader
        """
        path_obj = Path(path)
        with path_obj.open("r", encoding="utf-8") as f:
            document = json.load(f)

        return cls.from_json(
            document, base_dir, suffix, tree=tree, mode=mode, input_file=str(path)
        )

    @classmethod
    def from_json(
        cls,
        document: Mapping[str, Any],
        base_dir: str | os.PathLike[str] = "",
        suffix: str = "",
        *,
        tree: str = DEFAULT_TREE,
        mode: LoadMode = LoadMode.LENIENT,
        input_file: str = "",
    ) -> SampleReader:
        """
        Build a reader from an already parsed JSON document.

        Every process is built with the same base directory and suffix. In
        lenient mode processes without any usable sample are dropped and
        recorded in ``rejected``. In strict mode the first gap fails the
        reader, unless no process is usable at all.

        Raises:
            SampleReaderError: MISSING_PARAMETER or INVALID_PARAMETER for a bad
                document, EMPTY_SAMPLE_READER (with every missing path) if no
                process is left, and the first process gap in strict mode
        """
        where = input_file or "sample configuration"
        if not isinstance(document, Mapping):
            raise SampleReaderError(
                ErrorKind.INVALID_PARAMETER,
                f"Invalid {where}: expected a JSON object at the top level",
            )
        if "processes" not in document:
            raise SampleReaderError.missing_parameter("processes", where)
        raw_processes = document["processes"]
        if not isinstance(raw_processes, Sequence) or isinstance(raw_processes, str):
            raise SampleReaderError(
                ErrorKind.INVALID_PARAMETER,
                f"Invalid parameter 'processes' in {where}: expected an array",
                parameter="processes",
            )

        processes: list[ProcessInfo] = []
        rejected: list[MissingFiles] = []
        first_gap: SampleReaderError | None = None
        for raw in raw_processes:
            if not isinstance(raw, Mapping):
                raise SampleReaderError(
                    ErrorKind.INVALID_PARAMETER,
                    f"Invalid parameter 'processes' in {where}: expected objects, got {raw!r}",
                    parameter="processes",
                )
            try:
                process = ProcessInfo.from_json(raw, base_dir, suffix, mode=mode)
            except SampleReaderError as exc:
                if exc.kind is ErrorKind.FILE_NOT_FOUND and first_gap is not None:
                    raise first_gap from None
                if exc.kind is not ErrorKind.EMPTY_PROCESS_INFO:
                    raise
                if mode is LoadMode.STRICT:
                    first_gap = first_gap or exc
                else:
                    log.warning("Dropping process '%s' without samples: %s", raw["tag"], exc)
                rejected.extend(exc.missing)
                continue
            processes.append(process)

        if not processes:
            raise SampleReaderError(
                ErrorKind.EMPTY_SAMPLE_READER,
                f"No usable process in {where}",
                missing=rejected,
            )
        if first_gap is not None:
            raise first_gap

        reader = cls(
            input_file=input_file,
            base_dir=str(base_dir),
            suffix=suffix,
            tree=tree,
            mode=mode,
            processes=Processes(tuple(processes)),
            rejected=tuple(rejected),
        )
        log.info(
            "Loaded %d processes with %d samples from %s",
            len(reader.processes),
            sum(len(process) for process in reader),
            where,
        )
        return reader

    def __iter__(self) -> Iterator[ProcessInfo]:  # type: ignore[override]
        return iter(self.processes)

    def __len__(self) -> int:
        return len(self.processes)

    def get_process(self, tag: str) -> ProcessInfo:
        """Process with the given tag; raises KeyError if there is none."""
        try:
            return self.processes[tag]
        except KeyError:
            msg = f"No process tagged '{tag}' (have: {', '.join(self.processes.tags)})"
            raise KeyError(msg) from None

    def _selected(self, process: str) -> list[ProcessInfo]:
        if not process:
            return list(self.processes)
        return [self.get_process(process)]

    @property
    def missing_files(self) -> tuple[MissingFiles, ...]:
        """Every missing-file record, dropped processes first."""
        return self.rejected + tuple(
            chain.from_iterable(process.missing_files for process in self.processes)
        )

    def print_errors(self, stream: TextIO | None = None) -> None:
        """
        Write one ``tag: 'path1', 'path2'`` line per sample with missing files.

        Args:
            stream: Where to write, standard output by default
        """
        stream = sys.stdout if stream is None else stream
        for record in self.missing_files:
            if record.paths:
                stream.write(f"{record}\n")

    def get_all_files(self) -> list[str]:
        """Files of every process, flattened in process and sample order."""
        return list(
            chain.from_iterable(process.get_all_files() for process in self.processes)
        )

    def get_chain(self) -> Chain:
        """Chain over every file of the reader."""
        return Chain(self.get_all_files(), self.tree)

    def get_hist(
        self,
        process: str,
        variable: str,
        selection: str,
        weight: str,
        nbins: int,
        low: float,
        high: float,
    ) -> hist.Hist:
        """
        Normalized distribution of ``variable`` for one process or for all.

        Args:
            process: Tag of the process, or empty to sum over every process
            variable: Expression to histogram
            selection: Selection expression, empty for all events
            weight: Per-event weight expression, empty for unit weights
            nbins: Number of bins
            low: Lower edge of the histogram
            high: Upper edge of the histogram

        Returns:
            hist.Hist: The process histogram, or the bin-wise sum over every
            process

        Raises:
            KeyError: If ``process`` names no process of this reader
        """
        if process:
            return self.get_process(process).get_hist(
                variable, selection, weight, nbins, low, high, tree=self.tree
            )

        total = make_hist("total", "Total", variable, nbins, low, high)
        return add_into(
            total,
            (
                p.get_hist(variable, selection, weight, nbins, low, high, tree=self.tree)
                for p in self.processes
            ),
        )

    def get_stack(
        self,
        variable: str,
        selection: str,
        weight: str,
        nbins: int,
        low: float,
        high: float,
    ) -> hist.Stack:
        """
        Stack of per-process histograms, in process order.

        Superimposed processes are left out; get them with :meth:`get_hist`.
        Each histogram carries its process style as ``metadata``.

        Raises:
            ValueError: If every process is superimposed (or there is none)
        """
        return make_stack(
            process.get_hist(
                variable, selection, weight, nbins, low, high, tree=self.tree
            )
            for process in self.processes
            if not process.superimpose
        )

    def get_yield(
        self, process: str, selection: str, weight: str
    ) -> ValueWithUncertainty:
        """
        Normalized yield of one process, or of all of them.

        Raises:
            KeyError: If ``process`` names no process of this reader
        """
        return sum(
            (
                p.get_yield(selection, weight, tree=self.tree)
                for p in self._selected(process)
            ),
            ValueWithUncertainty(),
        )

    def _view(self, predicate: Callable[[ProcessInfo], bool]) -> SampleReader:
        return self.model_copy(
            update={"processes": self.processes.select(predicate), "rejected": ()}
        )

    def get_data(self) -> SampleReader:
        """View with the data processes."""
        return self._view(lambda process: process.is_data)

    def get_mc_bkg(self) -> SampleReader:
        """View with the simulated background processes."""
        return self._view(lambda process: not process.is_data and not process.is_signal)

    def get_mc_sig(self) -> SampleReader:
        """View with the simulated signal processes."""
        return self._view(lambda process: process.is_signal)

    def get_mc(self) -> SampleReader:
        """View with every simulated process."""
        return self._view(lambda process: not process.is_data)


__all__ = ("SampleReader",)
