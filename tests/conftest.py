from __future__ import annotations

import copy
import json

import numpy as np
import pytest
import uproot

TREE = "Events"

# file stem -> (met, w)
EVENTS = {
    "data_A": ([10.0, 20.0, 30.0, 40.0], [1.0, 1.0, 1.0, 1.0]),
    "ttbar_0": ([5.0, 15.0, 25.0, 35.0], [1.0, 1.0, 2.0, 2.0]),
    "ttbar_1": ([45.0, 55.0], [1.0, 1.0]),
    "wjets": ([50.0, 60.0, 70.0], [1.0, 1.0, 1.0]),
    "stop": ([100.0, 150.0, 200.0], [1.0, 1.0, 1.0]),
}

CONFIG = {
    "processes": [
        {
            "tag": "data",
            "label": "Data",
            "isdata": True,
            "marker": 21,
            "samples": [{"tag": "data_A", "crosssection": 1.0, "files": ["data_A"]}],
        },
        {
            "tag": "ttbar",
            "label": "ttbar",
            "color": 2,
            "fill": 1001,
            "samples": [
                {
                    "tag": "ttbar_pow",
                    "crosssection": 10.0,
                    "branchingratio": 0.5,
                    "split": 2,
                    "files": ["ttbar_0", "ttbar_1"],
                }
            ],
        },
        {
            "tag": "wjets",
            "label": "W+jets",
            "isfastsim": True,
            "color": 3,
            "samples": [{"tag": "wjets_ht", "crosssection": 2.0, "files": ["wjets"]}],
        },
        {
            "tag": "stop",
            "label": "Signal",
            "issignal": True,
            "spimpose": True,
            "lcolor": 4,
            "lwidth": 2,
            "samples": [{"tag": "stop_500", "crosssection": 0.1, "files": ["stop"]}],
        },
    ]
}


def _write_tree(path, tree=TREE, **branches):
    """Write a flat TTree with the given branches to path."""
    with uproot.recreate(path) as f:
        f.mktree(tree, dict.fromkeys(branches, np.float64))
        f[tree].extend(
            {
                name: np.asarray(values, dtype=np.float64)
                for name, values in branches.items()
            }
        )
    return path


@pytest.fixture
def write_tree():
    """Helper writing a flat TTree: write_tree(path, tree=..., **branches)."""
    return _write_tree


@pytest.fixture
def sample_dir(tmp_path):
    """Directory holding one ROOT file per entry of EVENTS."""
    for stem, (met, w) in EVENTS.items():
        _write_tree(tmp_path / f"{stem}.root", met=met, w=w)
    return tmp_path


@pytest.fixture
def base_dir(sample_dir):
    """Prefix resolving the fragments of CONFIG into sample_dir."""
    return f"{sample_dir}/"


@pytest.fixture
def config():
    """Fresh copy of the four-process configuration."""
    return copy.deepcopy(CONFIG)


@pytest.fixture
def config_file(tmp_path, config):
    """CONFIG written to a JSON file."""
    path = tmp_path / "samples.json"
    path.write_text(json.dumps(config), encoding="utf-8")
    return path
