"""
Histogram helpers.

Distributions are scikit-hep ``hist.Hist`` objects with a single regular axis
and weighted storage, so every bin keeps both its sum of weights and its sum
of squared weights. Adding two histograms adds bin-wise, multiplying by a
number scales values linearly and variances quadratically.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import hist


def make_hist(
    name: str,
    label: str,
    variable: str,
    nbins: int,
    low: float,
    high: float,
    *,
    metadata: Any = None,
) -> hist.Hist:
    """
    Create an empty weighted histogram.

    Args:
        name: Histogram name (the process tag, for process histograms)
        label: Histogram title (the process label, for process histograms)
        variable: Expression the axis histograms, used as the axis label
        nbins: Number of bins
        low: Lower edge of the first bin
        high: Upper edge of the last bin
        metadata: Arbitrary object attached to the histogram (e.g. a style)

    Returns:
        hist.Hist: Empty histogram with ``hist.storage.Weight`` storage
    """
    if nbins <= 0:
        msg = f"Histogram '{name}' must have a positive number of bins, got {nbins}"
        raise ValueError(msg)
    if not high > low:
        msg = f"Histogram '{name}' needs high > low, got [{low}, {high}]"
        raise ValueError(msg)

    return hist.Hist(
        hist.axis.Regular(nbins, low, high, name="x", label=variable),
        storage=hist.storage.Weight(),
        name=name,
        label=label,
        metadata=metadata,
    )


def add_into(target: hist.Hist, histograms: Iterable[hist.Hist]) -> hist.Hist:
    """Add histograms bin-wise into ``target`` and return it."""
    for h in histograms:
        target += h
    return target


def make_stack(histograms: Iterable[hist.Hist]) -> hist.Stack:
    """
    Stack histograms in the given order.

    Each histogram keeps its own name, label and metadata, so a style stored
    in ``metadata`` travels with it.

    Raises:
        ValueError: If there is nothing to stack
    """
    histograms = list(histograms)
    if not histograms:
        msg = "Cannot build a stack without histograms"
        raise ValueError(msg)
    return hist.Stack(*histograms)


__all__ = ("add_into", "make_hist", "make_stack")
