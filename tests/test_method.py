import logging
import math

import numpy as np
import pytest

from quantitation.analysis import CalibrationMethod
from quantitation.core import DataPoint


def test_lod_and_loq_bounds_are_inclusive(serine_method):
    assert serine_method.check_lod(0.0)
    assert serine_method.check_lod(100.0)
    assert not serine_method.check_lod(100.0001)
    assert serine_method.check_loq(1.0)
    assert serine_method.check_loq(50.0)
    assert not serine_method.check_loq(0.999)


def test_internal_standard_flag(serine_method):
    assert serine_method.has_internal_standard
    assert not CalibrationMethod(component_name="gly").has_internal_standard


def test_supported_model_flag(serine_method):
    assert serine_method.has_supported_model
    assert not CalibrationMethod(transformation_model="quadratic").has_supported_model


def test_identity_fit_and_evaluate():
    method = CalibrationMethod()
    assert method.fit("identity", [DataPoint(1.0, 2.0)], {}) == {}
    assert method.evaluate("identity", 3.5, {}) == 3.5


def test_unknown_model_evaluates_to_input(caplog):
    with caplog.at_level(logging.WARNING):
        assert CalibrationMethod().evaluate("quadratic", 4.2, {"slope": 3.0}) == 4.2
    assert "quadratic" in caplog.text


def test_apply_uses_own_model(serine_method):
    assert serine_method.apply(8.0) == pytest.approx(4.0)


def test_weighted_linear_fit_works_in_weighted_space():
    x = np.array([1.0, 2.0, 4.0, 8.0, 16.0])
    data = [DataPoint(a, 0.5 * a) for a in x]
    params = {"x_weight": "ln(x)", "y_weight": "ln(y)"}

    fitted = CalibrationMethod(component_name="ala-L").fit("linear", data, params)

    # ln(y) = ln(x) + ln(0.5)
    assert fitted["slope"] == pytest.approx(1.0)
    assert fitted["intercept"] == pytest.approx(math.log(0.5))
    assert fitted["x_weight"] == "ln(x)"
    assert fitted["y_weight"] == "ln(y)"
    assert CalibrationMethod().evaluate("linear", 10.0, fitted) == pytest.approx(5.0)


def test_inverse_weighted_linear_evaluation():
    params = {"slope": 2.0, "intercept": 0.0, "x_weight": "1/x", "y_weight": "1/y"}
    # x=4 -> 0.25 -> y'=0.5 -> y=2
    assert CalibrationMethod().evaluate("linear", 4.0, params) == pytest.approx(2.0)


def test_weights_on_unweighted_model_are_ignored(caplog):
    data = [DataPoint(float(a), float(a)) for a in range(5)]
    with caplog.at_level(logging.WARNING):
        fitted = CalibrationMethod(component_name="gly").fit(
            "interpolated", data, {"x_weight": "1/x", "interpolation_type": "linear"})
    assert "does not support weighting" in caplog.text
    assert "x_weight" not in fitted
    assert CalibrationMethod().evaluate("interpolated", 2.5, fitted) == pytest.approx(2.5)


def test_to_dict_uses_file_column_names(serine_method):
    record = serine_method.to_dict()
    assert record["IS_name"] == "ser-L.IS"
    assert record["transformation_model_params"] == {"slope": 0.5, "intercept": 0.0}
    record["transformation_model_params"]["slope"] = 9.0
    assert serine_method.transformation_model_params["slope"] == 0.5
