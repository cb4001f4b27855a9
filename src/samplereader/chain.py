"""
Event chains over ROOT files.

A :class:`Chain` treats the same TTree in an ordered list of files as one
sequence of events, and evaluates variable, selection and weight expressions
on it through uproot. Expressions use uproot's Python expression language,
e.g. ``"met"``, ``"(met > 100) & (njet >= 1)"`` or ``"genWeight * 2"``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Any

import hist
import numpy as np
import numpy.typing as npt
import uproot

log = logging.getLogger(__name__)

DEFAULT_TREE = "Events"

_VALUE = "_samplereader_value"
_WEIGHT = "_samplereader_weight"
_CUT = "_samplereader_cut"


def constant_weight(weight: str) -> float | None:
    """
    Interpret a weight expression as a constant, if it is one.

    An empty expression means a weight of one.

    Returns:
        The constant, or None if the expression must be evaluated per event
    """
    weight = weight.strip()
    if not weight:
        return 1.0
    try:
        return float(weight)
    except ValueError:
        return None


class Chain:
    """
    Read-only chain of one TTree across several ROOT files.

    The chain only records the file list; files are opened on demand by each
    query and closed once it finishes.

    Attributes:
        files: Paths of the chained files, in order
        tree: Name of the TTree read from every file
        step_size: Chunk size handed to ``TTree.iterate``
    """

    def __init__(
        self,
        files: Iterable[str],
        tree: str = DEFAULT_TREE,
        *,
        step_size: int | str = "100 MB",
    ) -> None:
        self.files: tuple[str, ...] = tuple(str(file) for file in files)
        self.tree = tree
        self.step_size = step_size

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self) -> Iterator[str]:
        return iter(self.files)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tree={self.tree!r}, files={len(self.files)})"

    def trees(self) -> Iterator[uproot.TTree]:
        """
        Open every chained file in turn and yield its tree.

        Each file is closed once the consumer moves on to the next one.

        Raises:
            TypeError: If the object stored under the tree name is not a TTree
        """
        for path in self.files:
            with uproot.open(path) as f:
                tree = f[self.tree]
                if not isinstance(tree, uproot.TTree):
                    msg = (
                        f"'{self.tree}' in {path} is a {type(tree).__name__}, "
                        "not a TTree"
                    )
                    raise TypeError(msg)
                yield tree

    @property
    def num_entries(self) -> int:
        """Total number of entries over every chained file."""
        return sum(tree.num_entries for tree in self.trees())

    def iterate(
        self,
        variable: str = "",
        selection: str = "",
        weight: str = "",
    ) -> Iterator[tuple[npt.NDArray[Any] | None, npt.NDArray[np.float64]]]:
        """
        Evaluate expressions chunk by chunk over entries passing the selection.

        Args:
            variable: Expression to return per entry, or empty for none
            selection: Boolean expression selecting entries, empty for all
            weight: Weight expression, empty or a number for a constant weight

        Yields:
            Tuples of (values, weights) for each chunk; values is None when
            no variable was requested
        """
        fixed = constant_weight(weight)
        selection = selection.strip()

        aliases: dict[str, str] = {}
        if variable:
            aliases[_VALUE] = variable
        if fixed is None:
            aliases[_WEIGHT] = weight
        if selection:
            aliases[_CUT] = selection

        if not aliases:
            for tree in self.trees():
                yield None, np.full(tree.num_entries, fixed, dtype=np.float64)
            return

        expressions = list(aliases)
        for tree in self.trees():
            for arrays in tree.iterate(
                expressions,
                cut=_CUT if selection else None,
                aliases=aliases,
                library="np",
                step_size=self.step_size,
            ):
                entries = len(arrays[expressions[0]])
                if fixed is None:
                    weights = np.asarray(arrays[_WEIGHT], dtype=np.float64)
                else:
                    weights = np.full(entries, fixed, dtype=np.float64)
                yield arrays.get(_VALUE), weights

    def fill(
        self,
        h: hist.Hist,
        variable: str,
        selection: str = "",
        weight: str = "",
        *,
        scale: float = 1.0,
    ) -> hist.Hist:
        """
        Fill ``h`` with ``variable`` for entries passing ``selection``.

        Each entry is weighted by ``weight * scale``.

        Returns:
            The filled histogram (the same object as ``h``)
        """
        for values, weights in self.iterate(variable, selection, weight):
            h.fill(np.asarray(values, dtype=np.float64), weight=weights * scale)
        return h

    def sum_weights(self, selection: str = "", weight: str = "") -> tuple[float, float]:
        """
        Sum of weights and sum of squared weights over selected entries.

        Returns:
            Tuple of (sum of w, sum of w squared)
        """
        sum_w = 0.0
        sum_w2 = 0.0
        for _, weights in self.iterate("", selection, weight):
            sum_w += float(weights.sum())
            sum_w2 += float(np.square(weights).sum())
        log.debug("%r: sum_w=%g sum_w2=%g", self, sum_w, sum_w2)
        return sum_w, sum_w2


__all__ = ("DEFAULT_TREE", "Chain", "constant_weight")
