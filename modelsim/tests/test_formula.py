"""Tests for formula parsing and expression evaluation."""

import numpy as np
import pandas as pd
import pytest

from modelsim.errors import FormulaError, ResolutionError
from modelsim.sim.expression import BinaryOp, Call, Constant, Name, evaluate, free_names, parse_expression
from modelsim.sim.formula import Formula, ParameterFormula, partition_predictors


def test_parse_expression_builds_tree():
    expr = parse_expression("1 + 2 * x1")
    assert expr == BinaryOp("+", Constant(1), BinaryOp("*", Constant(2), Name("x1")))
    call = parse_expression("gp(s1, s2, 'exp_cov', phi=0.1)")
    assert isinstance(call, Call)
    assert call.func == "gp"
    assert call.kwargs == (("phi", Constant(0.1)),)


@pytest.mark.parametrize("text", ["x ^ 2", "np.exp(x)", "x if y else z", "lambda: 1", "x +", "f(**kw)"])
def test_unsupported_syntax_raises(text):
    with pytest.raises(FormulaError):
        parse_expression(text)


def test_free_names_skip_function_names():
    expr = parse_expression("logistic(mgp(s1, s2, 'exponential', variance, nugget, phi)) + x1")
    assert free_names(expr) == ["s1", "s2", "variance", "nugget", "phi", "x1"]


def test_evaluate_against_table_and_constants():
    table = pd.DataFrame({"x1": [0.0, 1.0, 2.0]})
    expr = parse_expression("b0 + b1 * x1 ** 2 - -1")
    out = evaluate(expr, table, constants={"b0": 1.0, "b1": 3.0})
    assert np.allclose(out, [2.0, 5.0, 14.0])
    assert np.allclose(evaluate(parse_expression("c(1, x1)"), table), [1.0, 0.0, 1.0, 2.0])
    assert np.allclose(evaluate(parse_expression("exp(0)"), table), 1.0)


def test_evaluate_unknown_names_raise_resolution_error():
    table = pd.DataFrame({"x1": [0.0, 1.0]})
    with pytest.raises(ResolutionError):
        evaluate(parse_expression("x1 + x2"), table)
    with pytest.raises(ResolutionError):
        evaluate(parse_expression("nope(x1)"), table)


def test_evaluate_passes_rng_to_stochastic_functions():
    table = pd.DataFrame({"s1": [0.0, 0.5, 1.0], "s2": [0.0, 0.2, 0.0]})
    expr = parse_expression("gp(s1, s2, 'exp_cov', phi=0.3, sigma2=1.0)")
    a = evaluate(expr, table, rng=np.random.default_rng(8))
    b = evaluate(expr, table, rng=np.random.default_rng(8))
    assert np.array_equal(a, b)


def test_evaluate_user_functions():
    table = pd.DataFrame({"x1": [1.0, 2.0]})
    out = evaluate(parse_expression("double(x1)"), table, functions={"double": lambda v: 2 * v})
    assert np.array_equal(out, [2.0, 4.0])


def test_parameter_formula_parse():
    item = ParameterFormula.parse("mean ~ 5 + 0.5 * x1")
    assert item.name == "mean"
    assert item.variables == ["x1"]
    for bad in ("mean = 5", "1mean ~ x", "mean ~ "):
        with pytest.raises(FormulaError):
            ParameterFormula.parse(bad)


def test_formula_coerce_spellings_and_predictors():
    from_list = Formula.coerce(["mean ~ 5 + 0.5 * x1 + 0.1 * x2", "sd ~ exp(x1) + s1"])
    from_dict = Formula.coerce({"mean": "5 + 0.5 * x1 + 0.1 * x2", "sd": "exp(x1) + s1"})
    from_pairs = Formula.coerce([("mean", "5 + 0.5 * x1 + 0.1 * x2"), ("sd", "exp(x1) + s1")])
    for formula in (from_list, from_dict, from_pairs):
        assert formula.params == ["mean", "sd"]
        assert formula.predictors() == ["x1", "x2", "s1"]
    assert Formula.coerce(from_list) is from_list


def test_formula_excludes_parameters_and_constants():
    formula = Formula.coerce(["mean ~ mfe(x1, beta)", "sd ~ exp(mean)"])
    assert formula.predictors(constants={"beta"}) == ["x1"]


def test_formula_rejects_duplicates():
    with pytest.raises(FormulaError):
        Formula.coerce(["mean ~ x1", "mean ~ x2"])


def test_partition_predictors():
    ordinary, spatial = partition_predictors(["x1", "s1", "s2", "id1", "s", "sx"], supplied={"x1"})
    assert ordinary == ["id1", "s", "sx"]
    assert spatial == ["s1", "s2"]
