import logging
import math

import numpy as np
import pytest

from quantitation.core import ConfigurationError, DataPoint, DataValidationError
from quantitation.models import ModelKind, ModelRegistry
from quantitation.models.interpolated_models import evaluate_interpolated, fit_interpolated
from quantitation.models.linear_models import evaluate_linear, fit_linear
from quantitation.models.lowess_models import evaluate_lowess, fit_lowess
from quantitation.models.registry import evaluate_identity, fit_identity
from quantitation.models.spline_models import evaluate_spline, fit_spline


def _points(x, y):
    return [DataPoint(a, b) for a, b in zip(x, y)]


def test_default_models_are_registered():
    registry = ModelRegistry()
    assert set(registry.list_models()) >= {"identity", "linear", "spline", "interpolated", "lowess"}
    assert registry.get_variant(ModelKind.LINEAR).weighted
    assert not registry.get_variant(ModelKind.LOWESS).weighted


@pytest.mark.parametrize("name, kind", [
    ("linear", ModelKind.LINEAR),
    ("TransformationModelLinear", ModelKind.LINEAR),
    ("TransformationModelBSpline", ModelKind.SPLINE),
    ("TransformationModelInterpolated", ModelKind.INTERPOLATED),
    ("TransformationModelLowess", ModelKind.LOWESS),
    ("TransformationModel", ModelKind.IDENTITY),
])
def test_model_names_resolve(name, kind):
    variant, recognised = ModelRegistry().resolve(name)
    assert recognised
    assert variant.kind is kind


def test_unknown_model_resolves_to_identity(caplog):
    with caplog.at_level(logging.WARNING):
        variant, recognised = ModelRegistry().resolve("quadratic")
    assert not recognised
    assert variant.kind is ModelKind.IDENTITY
    assert "quadratic" in caplog.text


def test_has_model_does_not_fall_back():
    registry = ModelRegistry()
    assert registry.has_model("TransformationModelLinear")
    assert registry.has_model("bspline")
    assert not registry.has_model("quadratic")
    assert not registry.has_model(None)


def test_identity_model():
    assert fit_identity(_points([1, 2], [3, 4]), {"slope": 2}) == {}
    assert evaluate_identity(7.25, {}) == 7.25


def test_linear_fit_recovers_line():
    x = np.arange(1, 11, dtype=float)
    params = fit_linear(_points(x, 2.0 * x + 1.0), {})
    assert params["slope"] == pytest.approx(2.0)
    assert params["intercept"] == pytest.approx(1.0)
    assert evaluate_linear(20.0, params) == pytest.approx(41.0)


def test_symmetric_linear_fit_recovers_line():
    x = np.arange(1, 11, dtype=float)
    params = fit_linear(_points(x, 2.0 * x + 1.0), {"symmetric_regression": "true"})
    assert params["symmetric_regression"] is True
    assert params["slope"] == pytest.approx(2.0)
    assert params["intercept"] == pytest.approx(1.0)


def test_linear_fit_without_data_uses_given_parameters():
    params = fit_linear([], {"slope": "1.5", "intercept": 2})
    assert params == {"slope": 1.5, "intercept": 2.0, "symmetric_regression": False}


def test_linear_fit_rejects_degenerate_data():
    with pytest.raises(DataValidationError):
        fit_linear(_points([1.0], [1.0]), {})
    with pytest.raises(DataValidationError):
        fit_linear(_points([2.0, 2.0, 2.0], [1.0, 2.0, 3.0]), {})
    with pytest.raises(DataValidationError):
        fit_linear([], {})


def test_interpolated_linear_and_extrapolation():
    params = fit_interpolated(_points([0, 1, 2, 3], [0, 2, 4, 8]),
                              {"interpolation_type": "linear"})
    assert evaluate_interpolated(0.5, params) == pytest.approx(1.0)
    assert evaluate_interpolated(2.5, params) == pytest.approx(6.0)
    # two-point-linear uses the outermost pair on each side
    assert evaluate_interpolated(4.0, params) == pytest.approx(12.0)
    assert evaluate_interpolated(-1.0, params) == pytest.approx(-2.0)


def test_interpolated_averages_duplicate_nodes():
    params = fit_interpolated(_points([1, 1, 2], [1, 3, 4]), {"interpolation_type": "linear"})
    assert params["x"] == [1.0, 2.0]
    assert params["y"] == [2.0, 4.0]


@pytest.mark.parametrize("interpolation", ["cspline", "akima"])
def test_smooth_interpolation_of_collinear_nodes_is_linear(interpolation):
    x = [0.0, 1.0, 2.0, 3.0, 4.0]
    params = fit_interpolated(_points(x, [3.0 * v for v in x]), {"interpolation_type": interpolation})
    assert evaluate_interpolated(2.5, params) == pytest.approx(7.5)


def test_interpolated_rejects_unknown_settings():
    with pytest.raises(ConfigurationError):
        fit_interpolated(_points([0, 1], [0, 1]), {"interpolation_type": "quintic"})
    with pytest.raises(ConfigurationError):
        fit_interpolated(_points([0, 1], [0, 1]), {"extrapolation_type": "none"})


def test_interpolated_needs_two_distinct_nodes():
    with pytest.raises(DataValidationError):
        fit_interpolated(_points([1, 1], [0, 1]), {})


def test_lowess_follows_noisy_line():
    rng = np.random.default_rng(42)
    x = np.linspace(0.0, 10.0, 30)
    y = 2.0 * x + 1.0 + rng.normal(0.0, 0.05, x.size)

    params = fit_lowess(_points(x, y), {})
    assert params["extrapolation_type"] == "four-point-linear"
    assert evaluate_lowess(5.0, params) == pytest.approx(11.0, abs=0.2)
    assert evaluate_lowess(12.0, params) == pytest.approx(25.0, abs=0.5)


def test_lowess_needs_data():
    with pytest.raises(DataValidationError):
        fit_lowess(_points([1.0], [1.0]), {})


def test_spline_reproduces_line():
    x = np.arange(10, dtype=float)
    params = fit_spline(_points(x, 3.0 * x + 1.0), {"num_nodes": 5})
    assert evaluate_spline(4.5, params) == pytest.approx(14.5, rel=1e-6)
    assert params["x_min"] == 0.0
    assert params["x_max"] == 9.0


@pytest.mark.parametrize("extrapolate, expected", [
    ("linear", 37.0),
    ("global_linear", 37.0),
    ("b_spline", 37.0),
    ("constant", 28.0),
])
def test_spline_extrapolation(extrapolate, expected):
    x = np.arange(10, dtype=float)
    params = fit_spline(_points(x, 3.0 * x + 1.0), {"extrapolate": extrapolate})
    assert evaluate_spline(12.0, params) == pytest.approx(expected, rel=1e-6)


def test_spline_rejects_unknown_extrapolation():
    with pytest.raises(ConfigurationError):
        fit_spline(_points([0, 1, 2], [0, 1, 2]), {"extrapolate": "mirror"})


def test_spline_params_are_plain_values():
    x = np.arange(8, dtype=float)
    params = fit_spline(_points(x, np.sin(x)), {})
    assert isinstance(params["knots"], list)
    assert all(math.isfinite(c) for c in params["coefficients"])
