"""Tests for the univariate simulation engine."""

import numpy as np
import pandas as pd
import pytest

from modelsim.errors import InvocationError, ReshapeError, ResolutionError
from modelsim.sim.generator import draw_response, resolve_generator, rnorm, sim_model


def test_output_shape_and_columns():
    """Simulated predictors, parameters and response make up the table."""
    f = ["mean ~ 5 + 0.5 * x1 + 0.1 * x2 + 0.7 * id1", "sd ~ exp(x1)"]
    data = sim_model(f, rnorm, n=100, seed=3)
    assert len(data) == 100
    assert list(data.columns) == ["x1", "x2", "id1", "mean", "sd", "y"]
    assert np.allclose(data["sd"], np.exp(data["x1"]))


def test_seeded_example_is_reproducible():
    """mean ~ 1 + 2 * x1 with seed 42 draws x1 then y from the same stream."""
    data = sim_model(["mean ~ 1 + 2 * x1"], rnorm, n=10, seed=42)
    rng = np.random.default_rng(42)
    x1 = rng.standard_normal(10)
    assert np.array_equal(data["x1"].to_numpy(), x1)
    assert np.array_equal(data["mean"].to_numpy(), 1 + 2 * x1)
    assert np.array_equal(data["y"].to_numpy(), rng.normal(loc=1 + 2 * x1, scale=1.0, size=10))
    again = sim_model(["mean ~ 1 + 2 * x1"], rnorm, n=10, seed=42)
    pd.testing.assert_frame_equal(data, again)


def test_seed_does_not_depend_on_previous_calls():
    first = sim_model(seed=7, n=20)
    sim_model(n=20)  # consumes an unrelated stream
    second = sim_model(seed=7, n=20)
    pd.testing.assert_frame_equal(first, second)


def test_injected_generator_is_used():
    a = sim_model(n=15, rng=np.random.default_rng(11))
    b = sim_model(n=15, rng=np.random.default_rng(11))
    pd.testing.assert_frame_equal(a, b)


def test_scalar_parameters_are_broadcast():
    data = sim_model(["mean ~ 1 + 2 * x1", "sd ~ 1"], "rnorm", n=12, seed=0)
    assert np.all(data["sd"] == 1.0)


def test_init_data_is_used_and_not_modified():
    init = pd.DataFrame({"x1": np.linspace(-1, 1, 8)})
    original = init.copy()
    data = sim_model(["mean ~ 1 + 2 * x1 + x2"], "rnorm", n=8, init_data=init, seed=1)
    pd.testing.assert_frame_equal(init, original)
    assert np.array_equal(data["x1"], init["x1"])
    assert list(data.columns) == ["x1", "x2", "mean", "y"]
    with pytest.raises(ValueError):
        sim_model(["mean ~ x1"], "rnorm", n=9, init_data=init)


def test_spatial_coordinates_within_extent():
    f = ["mean ~ gp(s1, s2, 'exp_cov', phi=0.5, sigma2=1.0)", "sd ~ 0.1"]
    data = sim_model(f, "rnorm", n=40, seed=2, extent=3.0)
    for col in ("s1", "s2"):
        assert data[col].between(0.0, 3.0).all()
    assert data[["s1", "s2"]].std().min() > 0.3


def test_other_generators():
    data = sim_model(["rate ~ exp(0.5 + 0.3 * x1)"], "rpois", n=50, seed=4)
    assert (data["y"] >= 0).all()
    assert np.all(np.mod(data["y"], 1) == 0)
    custom = sim_model(["mean ~ x1"], lambda n, mean: mean * 2, n=5, seed=4)
    assert np.allclose(custom["y"], 2 * custom["x1"])


def test_parameter_referencing_parameter_is_unresolved():
    """Parameters are evaluated against the predictors, not each other."""
    with pytest.raises(ResolutionError):
        sim_model(["mean ~ 1 + x1", "sd ~ exp(mean)"], "rnorm", n=5, seed=0)


def test_generator_argument_mismatch():
    with pytest.raises(InvocationError):
        sim_model(["mean ~ x1"], "rpois", n=5, seed=0)
    with pytest.raises(TypeError):
        draw_response(rnorm, 3, {"location": np.zeros(3)}, np.random.default_rng(0))


def test_parameter_length_mismatch():
    with pytest.raises(ReshapeError):
        sim_model(["mean ~ c(1, 2, 3)"], "rnorm", n=10, seed=0)


def test_resolve_generator():
    assert resolve_generator("rnorm") is rnorm
    with pytest.raises(ValueError):
        resolve_generator("rcauchy")


@pytest.mark.parametrize(
    "generator, formula, low, high, integer",
    [
        ("rbinom", ["size ~ 10", "prob ~ logistic(x1)"], 0, 10, True),
        ("rpois", ["rate ~ exp(x1)"], 0, np.inf, True),
        ("rgamma", ["shape ~ 2", "rate ~ exp(x1)"], 0, np.inf, False),
        ("runif", ["min ~ -1 + 0 * x1", "max ~ 2"], -1, 2, False),
        ("rexp", ["rate ~ exp(x1)"], 0, np.inf, False),
        ("rlnorm", ["meanlog ~ 0.5 * x1", "sdlog ~ 0.3"], 0, np.inf, False),
        ("rnorm", ["sd ~ exp(x1)"], -np.inf, np.inf, False),
    ],
)
def test_builtin_generators_by_name(generator, formula, low, high, integer):
    """Every built-in generator runs through sim_model and respects its support."""
    data = sim_model(formula, generator, n=40, seed=6)
    y = data["y"].to_numpy(dtype=float)
    assert len(data) == 40
    assert np.all(y >= low)
    if generator == "runif":
        assert np.all(y < high)
    else:
        assert np.all(y <= high)
    if generator in ("rgamma", "rexp", "rlnorm"):
        assert np.all(y > 0)
    if integer:
        assert np.all(np.mod(y, 1) == 0)


def test_binomial_size_is_rounded_to_trials():
    data = sim_model(["size ~ 4.9 + 0 * x1", "prob ~ 1"], "rbinom", n=10, seed=0)
    assert np.all(data["y"] == 5)


class _NoSignature:
    """Callable whose signature cannot be inspected."""

    __signature__ = "unavailable"

    def __call__(self, n, mean):
        return np.zeros(n)


def test_mismatch_without_signature_is_invocation_error():
    with pytest.raises(InvocationError):
        draw_response(_NoSignature(), 3, {"location": np.zeros(3)}, np.random.default_rng(0))
    assert np.array_equal(draw_response(_NoSignature(), 3, {"mean": np.zeros(3)}, np.random.default_rng(0)), np.zeros(3))


def test_response_length_mismatch():
    with pytest.raises(ReshapeError):
        sim_model(["mean ~ x1"], lambda n, mean: np.zeros(n + 1), n=5, seed=0)
