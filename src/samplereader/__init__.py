"""
samplereader: JSON-configured sample bookkeeping with normalized yields and histograms
"""

from __future__ import annotations

from samplereader._version import version as __version__
from samplereader.chain import Chain
from samplereader.exceptions import ErrorKind, MissingFiles, SampleReaderError
from samplereader.processes import ProcessInfo, ProcessStyle
from samplereader.reader import SampleReader
from samplereader.samples import LoadMode, SampleInfo
from samplereader.uncertainty import ValueWithUncertainty

__all__ = [
    "Chain",
    "ErrorKind",
    "LoadMode",
    "MissingFiles",
    "ProcessInfo",
    "ProcessStyle",
    "SampleInfo",
    "SampleReader",
    "SampleReaderError",
    "ValueWithUncertainty",
    "__version__",
]
