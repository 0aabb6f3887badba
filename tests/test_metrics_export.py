import numpy as np
import pandas as pd
import pytest

from quantitation.core import (
    ArithmeticDegenerateError,
    BatchIssue,
    CalibrationResult,
    IssueCategory,
    QuantificationReport,
    QuantificationResult,
)
from quantitation.utils import (
    ResultsExporter,
    calculate_bias_array,
    calculate_calibration_metrics,
    coefficient_of_determination,
    compare_calibrations,
)


def test_coefficient_of_determination():
    rng = np.random.default_rng(0)
    actual = rng.uniform(1.0, 10.0, 20)
    assert coefficient_of_determination(actual, 3.0 * actual + 2.0) == pytest.approx(1.0)
    assert coefficient_of_determination(actual, -actual) == pytest.approx(1.0)


@pytest.mark.parametrize("actual, calculated", [
    ([1.0], [1.0]),
    ([1.0, 2.0, 3.0], [2.0, 2.0, 2.0]),
    ([1.0, 2.0, 3.0], [1.0, np.inf, 3.0]),
    ([1.0, 2.0], [1.0, 2.0, 3.0]),
])
def test_undefined_coefficient_of_determination_is_zero(actual, calculated):
    assert coefficient_of_determination(actual, calculated) == 0.0


def test_bias_array():
    np.testing.assert_allclose(calculate_bias_array([5.0, 2.0], [4.0, 2.5]), [20.0, 25.0])
    with pytest.raises(ArithmeticDegenerateError):
        calculate_bias_array([0.0, 1.0], [0.0, 1.0])


def test_calibration_metrics():
    metrics = calculate_calibration_metrics([1.0, 2.0, 4.0], [1.1, 1.9, 4.0])
    assert metrics["n_points"] == 3
    assert metrics["r2"] > 0.99
    assert metrics["max_bias"] == pytest.approx(10.0)
    assert metrics["mae"] == pytest.approx(0.2 / 3)


def _result(name, r2, biases):
    return CalibrationResult(
        component_name=name,
        transformation_model="linear",
        transformation_model_params={"slope": 0.5, "intercept": 0.0},
        points=[],
        biases=biases,
        r2=r2,
    )


def test_compare_calibrations_sorts_by_r2():
    df = compare_calibrations([_result("gly", 0.95, [5.0]), _result("ser-L", 0.99, [1.0, 3.0])])
    assert list(df["component_name"]) == ["ser-L", "gly"]
    assert df.loc[0, "max_bias"] == 3.0
    assert df.loc[0, "mean_bias"] == 2.0


def _report():
    return QuantificationReport(
        results=[
            QuantificationResult("ser-L", 4.0, "uM", "ser-L", "S1", within_lod=True, within_loq=True),
            QuantificationResult("gly", None, "", "gly", "S1"),
        ],
        issues=[BatchIssue(IssueCategory.CONFIGURATION_DEGRADED, "Internal standard gly.IS not found",
                           "gly", "S1")],
    )


def test_report_to_dataframe():
    df = ResultsExporter.report_to_dataframe(_report())
    assert list(df["component_name"]) == ["ser-L", "gly"]
    assert df["calculated_concentration"].isna().tolist() == [False, True]


def test_report_summary():
    summary = _report().summary()
    assert summary == {"n_results": 2, "n_computed": 1, "n_uncomputed": 1,
                       "issues": {"configuration_degraded": 1}}


def test_export_to_csv(tmp_path, linear_standards):
    calibration = CalibrationResult("ser-L", "linear", {"slope": 0.5, "intercept": 0.0},
                                    points=linear_standards[1:], biases=[0.0] * 6, r2=1.0,
                                    excluded_points=linear_standards[:1])

    written = ResultsExporter.export_to_csv(_report(), tmp_path / "out", {"ser-L": calibration})

    assert [p.name for p in written] == ["quantification.csv", "issues.csv",
                                         "calibration_summary.csv", "calibration_points.csv"]
    issues = pd.read_csv(written[1])
    assert issues.loc[0, "category"] == "configuration_degraded"
    points = pd.read_csv(written[3])
    assert points["used"].tolist() == [True] * 6 + [False]


def test_save_and_load_calibration(tmp_path, linear_standards):
    calibration = CalibrationResult("ser-L", "linear", {"slope": 0.5, "intercept": 0.0},
                                    points=linear_standards, biases=[0.0] * 7, r2=1.0)
    path = tmp_path / "calibration.joblib"
    ResultsExporter.save_calibration({"ser-L": calibration}, path)

    loaded = ResultsExporter.load_calibration(path)
    assert loaded["ser-L"].transformation_model_params == {"slope": 0.5, "intercept": 0.0}
    assert loaded["ser-L"].n_points == 7
