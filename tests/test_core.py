import logging

import pytest

import quantitation
from quantitation.core import (
    ArithmeticDegenerateError,
    CalibrationPoint,
    CalibrationSearchConfig,
    ConfigurationError,
    DataPoint,
    DataValidationError,
    Feature,
    FitInfeasibleError,
    QuantitationError,
    RansacConfig,
    WeightDomainError,
)


def test_data_point_rejects_non_finite_values():
    with pytest.raises(DataValidationError):
        DataPoint(float("nan"), 1.0)
    with pytest.raises(DataValidationError):
        DataPoint(1.0, float("inf"))


def test_data_points_order_by_x():
    points = sorted([DataPoint(3, 1), DataPoint(1, 2)])
    assert [p.as_tuple() for p in points] == [(1.0, 2.0), (3.0, 1.0)]


def test_concentration_ratio():
    feature = Feature("ser-L", {"peak_apex_int": 1.0})
    point = CalibrationPoint("ser-L", feature, 4.0, "ser-L.IS", is_actual_concentration=2.0)
    assert point.actual_concentration_ratio == 2.0

    without_is = CalibrationPoint("ser-L", feature, 4.0)
    assert without_is.actual_concentration_ratio == 4.0

    zero_is = CalibrationPoint("ser-L", feature, 4.0, "ser-L.IS", is_actual_concentration=0.0)
    with pytest.raises(ArithmeticDegenerateError):
        zero_is.actual_concentration_ratio


def test_exception_hierarchy():
    for error in (ConfigurationError("x"), WeightDomainError(-1.0, "ln(x)"),
                  ArithmeticDegenerateError("x"), FitInfeasibleError("x")):
        assert isinstance(error, QuantitationError)
    assert isinstance(ConfigurationError("x"), ValueError)


def test_fit_infeasible_error_carries_thresholds():
    error = FitInfeasibleError("no fit", thresholds={"min_r2": 0.9}, achieved={"r2": 0.5},
                               unmet=["min_r2"], component_name="gly")
    assert error.unmet == ["min_r2"]
    assert error.achieved["r2"] == 0.5
    assert str(error) == "no fit"


@pytest.mark.parametrize("config", [
    CalibrationSearchConfig(min_points=1),
    CalibrationSearchConfig(max_bias=-1.0),
    CalibrationSearchConfig(min_r2=2.0),
    RansacConfig(coverage_limit=1.2),
    RansacConfig(max_residual=0.0),
    RansacConfig(sampling_size=1),
])
def test_invalid_configs(config):
    with pytest.raises(ConfigurationError):
        config.validate()


def test_config_hash_is_stable():
    assert CalibrationSearchConfig().to_hash() == CalibrationSearchConfig().to_hash()
    assert CalibrationSearchConfig().to_hash() != CalibrationSearchConfig(min_r2=0.95).to_hash()
    assert RansacConfig(random_state=1).to_kwargs()["random_state"] == 1


def test_package_logger_has_null_handler():
    handlers = logging.getLogger("quantitation").handlers
    assert any(isinstance(h, logging.NullHandler) for h in handlers)
    assert quantitation.__version__
