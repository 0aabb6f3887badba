import pytest

from quantitation.analysis import CalibrationMethod
from quantitation.core import FileProcessingError
from quantitation.data import CSVStandardsLoader, MethodFile

STANDARDS_CSV = """sample_name,component_name,IS_component_name,feature_value,IS_feature_value,actual_concentration,IS_actual_concentration,concentration_units
std_1,ser-L,ser-L.IS,2000,1000,1.0,1.0,uM
std_2,ser-L,ser-L.IS,4000,1000,2.0,1.0,uM
std_1,gly,,300,,3.0,,uM
std_bad,gly,,n/a,,4.0,,uM
"""


def test_load_standards_groups_by_component(tmp_path):
    path = tmp_path / "standards.csv"
    path.write_text(STANDARDS_CSV)

    standards = CSVStandardsLoader().load_standards(path)

    assert sorted(standards) == ["gly", "ser-L"]
    first = standards["ser-L"][0]
    assert first.sample_name == "std_1"
    assert first.feature.get_value("peak_apex_int") == 2000.0
    assert first.is_feature.native_id == "ser-L.IS"
    assert first.actual_concentration_ratio == 1.0

    glycine = standards["gly"]
    assert len(glycine) == 1
    assert glycine[0].is_feature is None
    assert glycine[0].concentration_units == "uM"


def test_load_standards_ignores_extra_columns(tmp_path):
    path = tmp_path / "standards.csv"
    lines = STANDARDS_CSV.splitlines()
    path.write_text("\n".join([lines[0] + ",dilution_factor"] + [line + ",2" for line in lines[1:]]) + "\n")

    standards = CSVStandardsLoader(cache_enabled=False).load_standards(path)

    assert standards["ser-L"][1].actual_concentration_ratio == 2.0
    assert not hasattr(standards["ser-L"][1], "dilution_factor")


def test_load_standards_detects_semicolon_separator(tmp_path):
    path = tmp_path / "standards.csv"
    path.write_text(STANDARDS_CSV.replace(",", ";"))
    standards = CSVStandardsLoader(feature_name="area", cache_enabled=False).load_standards(path)
    assert standards["ser-L"][1].feature.get_value("area") == 4000.0


def test_load_standards_errors(tmp_path):
    loader = CSVStandardsLoader()
    with pytest.raises(FileProcessingError):
        loader.load_standards(tmp_path / "missing.csv")

    path = tmp_path / "bad.csv"
    path.write_text("sample_name,component_name\nstd_1,ser-L\n")
    with pytest.raises(FileProcessingError):
        loader.load_standards(path)
    assert not loader.validate_format(path)


def test_validate_format(tmp_path):
    path = tmp_path / "standards.csv"
    path.write_text(STANDARDS_CSV)
    assert CSVStandardsLoader().validate_format(path)
    assert not CSVStandardsLoader().validate_format(tmp_path / "standards.xlsx")


def test_load_samples(tmp_path):
    path = tmp_path / "unknowns.csv"
    path.write_text(
        "sample_name,component_group_name,component_name,feature_value\n"
        "S1,ser-L,ser-L,8000\n"
        "S1,ser-L,ser-L.IS,1000\n"
        "S2,ser-L,ser-L,\n"
    )
    samples = CSVStandardsLoader().load_samples(path)

    assert list(samples) == ["S1", "S2"]
    group = samples["S1"][0]
    assert group.group_id == "ser-L"
    assert [f.native_id for f in group] == ["ser-L", "ser-L.IS"]
    assert not samples["S2"][0].find("ser-L").has_value("peak_apex_int")


def test_parse_header():
    headers, params = MethodFile.parse_header(
        ["IS_name", "component_name", "transformation_model", "transformation_model_param_slope"])
    assert headers == {"IS_name": 0, "component_name": 1, "transformation_model": 2}
    assert params == {"slope": 3}


@pytest.mark.parametrize("filename", ["methods.csv", "methods.tsv"])
def test_method_file_store_and_load(tmp_path, filename):
    methods = [
        CalibrationMethod(component_name="ser-L", is_name="ser-L.IS", feature_name="peak_apex_int",
                          concentration_units="uM", llod=0.0, ulod=10.0, lloq=0.25, uloq=8.0,
                          correlation_coefficient=0.99, actual_concentration=1.0, n_points=6,
                          transformation_model="linear",
                          transformation_model_params={"slope": 0.5, "intercept": 0.01,
                                                       "x_weight": "ln(x)",
                                                       "symmetric_regression": False}),
        CalibrationMethod(component_name="gly", transformation_model="interpolated",
                          transformation_model_params={"x": [1.0, 2.0], "y": [3.0, 4.0]}),
    ]
    path = tmp_path / filename
    MethodFile().store(path, methods)
    if filename.endswith(".tsv"):
        assert "\t" in path.read_text().splitlines()[0]

    loaded = MethodFile().load(path)

    serine, glycine = loaded
    assert serine.is_name == "ser-L.IS"
    assert serine.uloq == 8.0
    assert serine.n_points == 6
    assert serine.transformation_model_params == {"slope": 0.5, "intercept": 0.01,
                                                  "x_weight": "ln(x)",
                                                  "symmetric_regression": "false"}
    assert glycine.is_name == ""
    assert glycine.transformation_model_params == {"x": [1.0, 2.0], "y": [3.0, 4.0]}
    assert glycine.apply(1.5) == pytest.approx(3.5)


def test_method_file_missing(tmp_path):
    with pytest.raises(FileProcessingError):
        MethodFile().load(tmp_path / "missing.csv")
