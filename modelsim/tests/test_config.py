"""Tests for configuration loading, the YAML driven pipeline and the CLI."""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from modelsim.cli import main
from modelsim.config import SimulationConfig, load_config
from modelsim.sim.generator import simulate

DATA_DIR = Path(__file__).resolve().parents[1] / "data"


def test_load_example_config():
    cfg = load_config(str(DATA_DIR / "example_config.yml"))
    assert isinstance(cfg, SimulationConfig)
    assert cfg.n == 50
    assert cfg.seed == 1
    assert cfg.generator == "rnorm"
    assert len(cfg.formula) == 2


def test_constants_become_arrays():
    cfg = load_config(str(DATA_DIR / "multivariate_config.yml"))
    assert cfg.multivariate
    assert isinstance(cfg.constants["variance"], np.ndarray)
    assert cfg.constants["variance"].shape == (2, 2)


def test_unknown_keys_are_rejected(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("formula: ['mean ~ x1']\nsamples: 10\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_simulate_writes_csv(tmp_path):
    out = tmp_path / "data.csv"
    data = simulate(str(DATA_DIR / "example_config.yml"), out_path=str(out))
    assert len(data) == 50
    assert {"x1", "x2", "s1", "s2", "mean", "sd", "y"} == set(data.columns)
    written = pd.read_csv(out)
    assert np.allclose(written["y"], data["y"])


def test_simulate_multivariate_config():
    data = simulate(str(DATA_DIR / "multivariate_config.yml"))
    assert len(data) == 40
    assert {"y1", "y2", "mean1", "mean2"} <= set(data.columns)


def test_cli_simulate_and_summarize(tmp_path, capsys):
    out = tmp_path / "sim.csv"
    assert main(["simulate", "--config", str(DATA_DIR / "example_config.yml"), "--out", str(out), "--seed", "3"]) == 0
    assert out.exists()
    assert "Simulated 50 observations" in capsys.readouterr().out

    pd.read_csv(out).to_pickle(tmp_path / "sim.pkl")
    report = tmp_path / "summary.txt"
    assert main(["summarize", str(tmp_path), "--filename", str(report)]) == 0
    assert "1) Pickle file: sim.pkl" in report.read_text(encoding="utf-8")


def test_cli_without_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out
