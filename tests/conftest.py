import pytest

from quantitation.analysis import CalibrationMethod
from quantitation.core import CalibrationPoint, Feature, FeatureGroup

FEATURE = "peak_apex_int"


@pytest.fixture
def feature_name():
    return FEATURE


@pytest.fixture
def make_standard():
    """Factory for a standard whose intensity ratio is ``intensity / is_intensity``."""

    def _make(component, concentration, intensity, is_intensity=1000.0, is_concentration=1.0,
              sample_name=None, is_name=None):
        is_name = f"{component}.IS" if is_name is None else is_name
        return CalibrationPoint(
            component_name=component,
            feature=Feature(component, {FEATURE: intensity}),
            actual_concentration=concentration,
            is_component_name=is_name,
            is_feature=Feature(is_name, {FEATURE: is_intensity}) if is_name else None,
            is_actual_concentration=is_concentration if is_name else None,
            concentration_units="uM",
            sample_name=sample_name or f"std_{concentration:g}",
        )

    return _make


@pytest.fixture
def linear_standards(make_standard):
    # intensity ratio = 2 * concentration, so concentration = 0.5 * ratio
    return [make_standard("ser-L", c, 2000.0 * c) for c in (0.5, 1, 2, 4, 8, 16, 32)]


@pytest.fixture
def serine_method():
    return CalibrationMethod(
        component_name="ser-L",
        is_name="ser-L.IS",
        feature_name=FEATURE,
        concentration_units="uM",
        llod=0.0,
        ulod=100.0,
        lloq=1.0,
        uloq=50.0,
        transformation_model="linear",
        transformation_model_params={"slope": 0.5, "intercept": 0.0},
    )


@pytest.fixture
def make_group():
    def _make(group_id, **intensities):
        return FeatureGroup(group_id, [Feature(name, {FEATURE: value}) for name, value in intensities.items()])

    return _make
