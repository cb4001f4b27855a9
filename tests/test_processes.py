"""
Unit tests for ProcessInfo.

Tests for building processes from JSON, tolerance to missing samples, and
the normalized histograms and yields aggregated over samples.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from samplereader.chain import Chain
from samplereader.exceptions import ErrorKind, SampleReaderError
from samplereader.processes import ProcessInfo, Processes, ProcessStyle
from samplereader.samples import LoadMode


@pytest.fixture
def ttbar(config, base_dir):
    return ProcessInfo.from_json(config["processes"][1], base_dir, ".root")


class TestProcessInfoFromJson:
    """Tests for building processes from JSON objects."""

    def test_flags_and_label(self, config, base_dir):
        """Flags come from their JSON spelling and default to False."""
        stop = ProcessInfo.from_json(config["processes"][3], base_dir, ".root")
        assert stop.tag == "stop"
        assert stop.label == "Signal"
        assert stop.is_signal
        assert stop.superimpose
        assert not stop.is_data
        assert not stop.is_fast_sim

    def test_style_defaults(self, ttbar):
        """Unset styling attributes take ROOT defaults."""
        assert ttbar.style == ProcessStyle(color=2)
        assert ttbar.style.fill == 1001
        assert ttbar.style.marker == 20

    def test_style_collected_once(self, config, base_dir):
        """Flat styling keys are gathered into one shared style model."""
        stop = ProcessInfo.from_json(config["processes"][3], base_dir, ".root")
        assert stop.style == ProcessStyle(lcolor=4, lwidth=2)
        assert stop.style is stop.style
        assert "lcolor" not in ProcessInfo.model_fields
        assert ProcessInfo(tag="bare", label="Bare").style == ProcessStyle()

    def test_samples_in_order(self, config, base_dir):
        """Samples keep the order of the JSON array."""
        spec = config["processes"][1]
        spec["samples"].append({"tag": "ttbar_ext", "crosssection": 1.0, "files": ["stop"]})
        process = ProcessInfo.from_json(spec, base_dir, ".root")
        assert process.samples.tags == ("ttbar_pow", "ttbar_ext")
        assert [sample.tag for sample in process] == ["ttbar_pow", "ttbar_ext"]
        assert len(process) == 2

    def test_get_all_files(self, config, base_dir):
        """Files are flattened over samples, in order."""
        spec = config["processes"][1]
        spec["samples"].append({"tag": "ttbar_ext", "crosssection": 1.0, "files": ["stop"]})
        process = ProcessInfo.from_json(spec, base_dir, ".root")
        assert process.get_all_files() == [
            f"{base_dir}ttbar_0.root",
            f"{base_dir}ttbar_1.root",
            f"{base_dir}stop.root",
        ]

    def test_get_chain(self, ttbar):
        """The process chain covers every file of the process."""
        chain = ttbar.get_chain()
        assert isinstance(chain, Chain)
        assert list(chain) == ttbar.get_all_files()
        assert chain.num_entries == 6


class TestProcessInfoErrors:
    """Tests for configuration failures of processes."""

    def test_missing_tag(self, config, base_dir):
        """A process without tag raises MISSING_PARAMETER naming 'tag'."""
        spec = config["processes"][1]
        del spec["tag"]
        with pytest.raises(SampleReaderError) as excinfo:
            ProcessInfo.from_json(spec, base_dir, ".root")
        assert excinfo.value.kind is ErrorKind.MISSING_PARAMETER
        assert excinfo.value.parameter == "tag"

    def test_missing_tag_reported_before_samples(self, config, base_dir):
        """The missing tag is reported even if no sample file exists."""
        spec = config["processes"][1]
        del spec["tag"]
        spec["samples"][0]["files"] = ["nope"]
        with pytest.raises(SampleReaderError) as excinfo:
            ProcessInfo.from_json(spec, base_dir, ".root")
        assert excinfo.value.parameter == "tag"

    def test_missing_samples(self, config, base_dir):
        """A process without sample array raises MISSING_PARAMETER."""
        spec = config["processes"][1]
        del spec["samples"]
        with pytest.raises(SampleReaderError, match="samples") as excinfo:
            ProcessInfo.from_json(spec, base_dir, ".root")
        assert excinfo.value.kind is ErrorKind.MISSING_PARAMETER

    def test_empty_samples(self, config, base_dir):
        """An empty sample array is an empty process."""
        spec = config["processes"][1]
        spec["samples"] = []
        with pytest.raises(SampleReaderError, match="has no samples") as excinfo:
            ProcessInfo.from_json(spec, base_dir, ".root")
        assert excinfo.value.kind is ErrorKind.EMPTY_PROCESS_INFO
        assert [record.tag for record in excinfo.value.missing] == ["ttbar"]
        assert excinfo.value.paths == ()

    def test_invalid_sample_entry(self, config, base_dir):
        """Sample entries must be JSON objects."""
        spec = config["processes"][1]
        spec["samples"] = ["ttbar_0"]
        with pytest.raises(SampleReaderError) as excinfo:
            ProcessInfo.from_json(spec, base_dir, ".root")
        assert excinfo.value.kind is ErrorKind.INVALID_PARAMETER

    @pytest.mark.parametrize("mode", [LoadMode.STRICT, LoadMode.LENIENT])
    def test_every_sample_failed(self, config, base_dir, mode):
        """If no sample survives, the union of missing paths is carried."""
        spec = config["processes"][1]
        spec["samples"] = [
            {"tag": "a", "crosssection": 1.0, "files": ["nope_a0", "nope_a1"]},
            {"tag": "b", "crosssection": 1.0, "files": ["nope_b"]},
        ]
        with pytest.raises(SampleReaderError) as excinfo:
            ProcessInfo.from_json(spec, base_dir, ".root", mode=mode)
        error = excinfo.value
        assert error.kind is ErrorKind.EMPTY_PROCESS_INFO
        assert [record.tag for record in error.missing] == ["a", "b"]
        assert error.paths == (
            f"{base_dir}nope_a0.root",
            f"{base_dir}nope_a1.root",
            f"{base_dir}nope_b.root",
        )

    def test_lenient_drops_empty_sample(self, config, base_dir):
        """In lenient mode an empty sample is dropped and recorded."""
        spec = config["processes"][1]
        spec["samples"].append({"tag": "ghost", "crosssection": 1.0, "files": ["nope"]})
        process = ProcessInfo.from_json(spec, base_dir, ".root")
        assert process.samples.tags == ("ttbar_pow",)
        assert len(process.missing_files) == 1
        assert process.missing_files[0].tag == "ghost"
        assert process.missing_files[0].paths == (f"{base_dir}nope.root",)

    def test_lenient_records_partially_missing_sample(self, config, base_dir):
        """Missing files of surviving samples are recorded too."""
        spec = config["processes"][1]
        spec["samples"][0]["files"].append("nope")
        process = ProcessInfo.from_json(spec, base_dir, ".root")
        assert process.missing_files[0].tag == "ttbar_pow"
        assert process.missing_files[0].paths == (f"{base_dir}nope.root",)

    def test_strict_fails_on_empty_sample(self, config, base_dir):
        """In strict mode an empty sample next to a usable one fails the process."""
        spec = config["processes"][1]
        spec["samples"].append({"tag": "ghost", "crosssection": 1.0, "files": ["nope"]})
        with pytest.raises(SampleReaderError) as excinfo:
            ProcessInfo.from_json(spec, base_dir, ".root", mode=LoadMode.STRICT)
        assert excinfo.value.kind is ErrorKind.EMPTY_SAMPLE_INFO
        assert excinfo.value.paths == (f"{base_dir}nope.root",)

    def test_strict_reports_first_gap(self, config, base_dir):
        """In strict mode the earliest gap wins over later partial gaps."""
        spec = config["processes"][1]
        spec["samples"].insert(0, {"tag": "ghost", "crosssection": 1.0, "files": ["nope"]})
        spec["samples"][1]["files"].append("nope_too")
        with pytest.raises(SampleReaderError) as excinfo:
            ProcessInfo.from_json(spec, base_dir, ".root", mode=LoadMode.STRICT)
        assert excinfo.value.kind is ErrorKind.EMPTY_SAMPLE_INFO
        assert [record.tag for record in excinfo.value.missing] == ["ghost"]

    def test_sample_parameter_errors_propagate(self, config, base_dir):
        """Configuration errors in a sample are never tolerated."""
        spec = config["processes"][1]
        del spec["samples"][0]["crosssection"]
        with pytest.raises(SampleReaderError) as excinfo:
            ProcessInfo.from_json(spec, base_dir, ".root")
        assert excinfo.value.kind is ErrorKind.MISSING_PARAMETER
        assert excinfo.value.parameter == "crosssection"


class TestProcessInfoAggregation:
    """Tests for histograms and yields of a process."""

    def test_yield_normalization(self, ttbar):
        """Unit weights: raw count of 6 times 10 x 0.5 / 2."""
        result = ttbar.get_yield("", "")
        assert result.value == pytest.approx(6 * 2.5)
        assert result.uncertainty == pytest.approx(math.sqrt(6) * 2.5)

    def test_yield_with_weight(self, ttbar):
        """Per-event weights enter linearly, their squares in the error."""
        result = ttbar.get_yield("", "w")
        assert result.value == pytest.approx(8 * 2.5)
        assert result.uncertainty == pytest.approx(math.sqrt(12) * 2.5)

    def test_yield_with_selection(self, ttbar):
        """Only entries passing the selection count."""
        result = ttbar.get_yield("met > 20", "w")
        assert result.value == pytest.approx(6 * 2.5)
        assert result.uncertainty == pytest.approx(math.sqrt(10) * 2.5)

    def test_yield_samples_in_quadrature(self, config, base_dir):
        """Independent samples combine their uncertainties in quadrature."""
        spec = config["processes"][1]
        spec["samples"] = [
            {"tag": "a", "crosssection": 1.0, "files": ["wjets"]},
            {"tag": "b", "crosssection": 3.0, "files": ["stop"]},
        ]
        process = ProcessInfo.from_json(spec, base_dir, ".root")
        result = process.get_yield("", "")
        # a: 3 +- sqrt(3); b: 9 +- 3 sqrt(3)
        assert result.value == pytest.approx(12.0)
        assert result.uncertainty == pytest.approx(math.sqrt(3 + 27))

    def test_hist(self, ttbar):
        """Histogram bins carry normalized weights and squared weights."""
        h = ttbar.get_hist("met", "", "w", 6, 0.0, 60.0)
        np.testing.assert_allclose(h.values(), [2.5, 2.5, 5.0, 5.0, 2.5, 2.5])
        np.testing.assert_allclose(
            h.variances(), [6.25, 6.25, 25.0, 25.0, 6.25, 6.25]
        )
        assert h.name == "ttbar"
        assert h.label == "ttbar"
        assert h.metadata == ttbar.style
        assert h.axes[0].label == "met"

    def test_hist_matches_yield(self, ttbar):
        """The histogram integral equals the yield for the same query."""
        h = ttbar.get_hist("met", "met > 10", "w", 10, 0.0, 100.0)
        result = ttbar.get_yield("met > 10", "w")
        total = h.sum(flow=True)
        assert total.value == pytest.approx(result.value)
        assert math.sqrt(total.variance) == pytest.approx(result.uncertainty)


class TestProcesses:
    """Tests for the Processes collection."""

    def test_select_shares_items(self, config, base_dir):
        """Selecting processes keeps the same objects."""
        processes = Processes(
            tuple(ProcessInfo.from_json(p, base_dir, ".root") for p in config["processes"])
        )
        selected = processes.select(lambda process: process.is_signal)
        assert isinstance(selected, Processes)
        assert selected.tags == ("stop",)
        assert selected["stop"] is processes["stop"]
