"""
Loading calibration standards, unknown samples and quantitation methods.
"""

import hashlib
import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import pandas as pd

from ..analysis.method import CalibrationMethod
from ..core.data_structures import CalibrationPoint, Feature, FeatureGroup, FeatureMap
from ..core.exceptions import DataValidationError, FileProcessingError
from ..core.interfaces import IMethodStore, IStandardsLoader

logger = logging.getLogger(__name__)

REQUIRED_STANDARDS_COLUMNS = ['sample_name', 'component_name', 'feature_value', 'actual_concentration']

METHOD_COLUMNS = ['IS_name', 'component_name', 'feature_name', 'concentration_units',
                  'llod', 'ulod', 'lloq', 'uloq', 'correlation_coefficient',
                  'actual_concentration', 'n_points', 'transformation_model']
PARAM_PREFIX = 'transformation_model_param_'


def _read_table(filepath: Path, separator: str = 'auto', encoding: str = 'utf-8') -> pd.DataFrame:
    """Read a delimited table, detecting the separator when ``separator`` is 'auto'."""
    if not filepath.exists():
        raise FileProcessingError(f"File not found: {filepath}")

    separators = [',', ';', '\t'] if separator == 'auto' else [separator]
    for enc in dict.fromkeys([encoding, 'latin-1']):
        for sep in separators:
            try:
                df = pd.read_csv(filepath, sep=sep, encoding=enc, dtype=str, keep_default_na=False)
            except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError):
                continue
            if len(df.columns) >= 2:
                df.columns = df.columns.str.strip()
                return df

    raise FileProcessingError(f"Could not read file: {filepath.name}")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() == ""


def _to_float(value: Any, default: float = 0.0) -> float:
    return default if _is_blank(value) else float(value)


class CSVStandardsLoader(IStandardsLoader):
    """Load calibration standards and unknown samples from delimited text files."""

    def __init__(self,
                 feature_name: str = 'peak_apex_int',
                 encoding: str = 'utf-8',
                 separator: str = 'auto',
                 cache_enabled: bool = True):
        """
        Initialize loader.

        Args:
            feature_name: Name under which ``feature_value`` is stored on features
            encoding: File encoding
            separator: Column separator (auto-detect if 'auto')
            cache_enabled: Enable caching of parsed files
        """
        self.feature_name = feature_name
        self.encoding = encoding
        self.separator = separator
        self.cache_enabled = cache_enabled
        self._cache = {} if cache_enabled else None

    def load_standards(self, source: Union[str, Path]) -> Dict[str, List[CalibrationPoint]]:
        """
        Load calibration standards grouped by component name.

        Rows with a non-numeric feature value or concentration are skipped
        with a warning.
        """
        filepath = Path(source)
        if self.cache_enabled:
            cache_key = self._get_cache_key(filepath)
            if cache_key in self._cache:
                return self._cache[cache_key]

        df = _read_table(filepath, self.separator, self.encoding)
        self._check_columns(df, REQUIRED_STANDARDS_COLUMNS, filepath)

        standards: Dict[str, List[CalibrationPoint]] = {}
        for row_number, row in enumerate(df.to_dict('records'), start=2):
            try:
                point = self._row_to_point(row)
            except (ValueError, DataValidationError) as e:
                logger.warning("%s line %d skipped: %s", filepath.name, row_number, e)
                continue
            standards.setdefault(point.component_name, []).append(point)

        logger.info("Loaded %d standards for %d components from %s",
                    sum(len(v) for v in standards.values()), len(standards), filepath.name)

        if self.cache_enabled:
            self._cache[cache_key] = standards
        return standards

    def load_samples(self, source: Union[str, Path]) -> Dict[str, FeatureMap]:
        """
        Load unknown samples as feature maps keyed by sample name.

        Sub-features are grouped by ``component_group_name`` when present,
        otherwise each component forms its own group.
        """
        filepath = Path(source)
        df = _read_table(filepath, self.separator, self.encoding)
        self._check_columns(df, ['sample_name', 'component_name', 'feature_value'], filepath)

        samples: Dict[str, Dict[str, FeatureGroup]] = {}
        for row in df.to_dict('records'):
            sample_name = str(row['sample_name']).strip()
            component_name = str(row['component_name']).strip()
            group_id = str(row.get('component_group_name', '') or '').strip() or component_name

            groups = samples.setdefault(sample_name, {})
            group = groups.setdefault(group_id, FeatureGroup(group_id))
            feature = Feature(component_name)
            if not _is_blank(row['feature_value']):
                feature.set_value(self.feature_name, float(row['feature_value']))
            group.subordinates.append(feature)

        return {name: list(groups.values()) for name, groups in samples.items()}

    def validate_format(self, source: Union[str, Path]) -> bool:
        filepath = Path(source)
        if filepath.suffix.lower() not in ['.csv', '.tsv', '.txt']:
            return False
        try:
            df = _read_table(filepath, self.separator, self.encoding)
        except FileProcessingError:
            return False
        return all(col in df.columns for col in REQUIRED_STANDARDS_COLUMNS)

    def _row_to_point(self, row: Dict[str, Any]) -> CalibrationPoint:
        component_name = str(row['component_name']).strip()
        if not component_name:
            raise DataValidationError("Missing component_name")

        feature = Feature(component_name, {self.feature_name: float(row['feature_value'])})

        is_name = str(row.get('IS_component_name', '') or '').strip()
        is_feature = None
        if is_name and not _is_blank(row.get('IS_feature_value')):
            is_feature = Feature(is_name, {self.feature_name: float(row['IS_feature_value'])})

        is_actual = row.get('IS_actual_concentration')
        return CalibrationPoint(
            component_name=component_name,
            feature=feature,
            actual_concentration=float(row['actual_concentration']),
            is_component_name=is_name,
            is_feature=is_feature,
            is_actual_concentration=None if _is_blank(is_actual) else float(is_actual),
            concentration_units=str(row.get('concentration_units', '') or '').strip(),
            sample_name=str(row['sample_name']).strip(),
        )

    @staticmethod
    def _check_columns(df: pd.DataFrame, required: List[str], filepath: Path) -> None:
        missing = [col for col in required if col not in df.columns]
        if missing:
            raise FileProcessingError(f"{filepath.name} is missing columns: {', '.join(missing)}")

    def _get_cache_key(self, filepath: Path) -> str:
        """Generate cache key for file."""
        if not filepath.exists():
            raise FileProcessingError(f"File not found: {filepath}")
        stat = filepath.stat()
        key_str = f"{filepath}_{stat.st_size}_{stat.st_mtime}_{self.feature_name}"
        return hashlib.md5(key_str.encode()).hexdigest()


class MethodFile(IMethodStore):
    """
    Quantitation method table.

    One row per component with the columns in ``METHOD_COLUMNS`` followed by
    any number of ``transformation_model_param_<name>`` columns. Files ending
    in ``.tsv`` are tab separated, everything else comma separated.
    """

    @staticmethod
    def parse_header(columns: List[str]) -> Tuple[Dict[str, int], Dict[str, int]]:
        """
        Map column names to their positions.

        Returns:
            Tuple of (method columns, model parameter columns keyed by the
            parameter name without its prefix)
        """
        headers, params_headers = {}, {}
        for i, column in enumerate(columns):
            column = column.strip()
            if column.startswith(PARAM_PREFIX):
                params_headers[column[len(PARAM_PREFIX):]] = i
            else:
                headers[column] = i
        return headers, params_headers

    @staticmethod
    def _separator(filepath: Path) -> str:
        return '\t' if filepath.suffix.lower() == '.tsv' else ','

    @staticmethod
    def _parse_param(value: str) -> Any:
        value = value.strip()
        if value.startswith('['):
            return json.loads(value)
        try:
            return float(value)
        except ValueError:
            return value

    @staticmethod
    def _format_param(value: Any) -> str:
        if isinstance(value, (list, tuple)):
            return json.dumps([float(v) for v in value])
        if isinstance(value, bool):
            return 'true' if value else 'false'
        return str(value)

    def load(self, filepath: Union[str, Path]) -> List[CalibrationMethod]:
        filepath = Path(filepath)
        df = _read_table(filepath, self._separator(filepath))
        headers, params_headers = self.parse_header(list(df.columns))
        if 'component_name' not in headers:
            raise FileProcessingError(f"{filepath.name} is missing column: component_name")

        methods = []
        for values in df.itertuples(index=False, name=None):
            methods.append(self._parse_line(values, headers, params_headers))

        logger.info("Loaded %d quantitation methods from %s", len(methods), filepath.name)
        return methods

    def _parse_line(self, values: tuple, headers: Dict[str, int],
                    params_headers: Dict[str, int]) -> CalibrationMethod:
        def text(column: str) -> str:
            return str(values[headers[column]]).strip() if column in headers else ""

        def number(column: str) -> float:
            return _to_float(text(column))

        try:
            params = {name: self._parse_param(values[i]) for name, i in params_headers.items()
                      if not _is_blank(values[i])}
            return CalibrationMethod(
                component_name=text('component_name'),
                is_name=text('IS_name'),
                feature_name=text('feature_name'),
                concentration_units=text('concentration_units'),
                llod=number('llod'),
                ulod=number('ulod'),
                lloq=number('lloq'),
                uloq=number('uloq'),
                correlation_coefficient=number('correlation_coefficient'),
                actual_concentration=number('actual_concentration'),
                n_points=int(number('n_points')),
                transformation_model=text('transformation_model') or 'identity',
                transformation_model_params=params,
            )
        except ValueError as e:
            raise FileProcessingError(f"Invalid method row for {text('component_name')}: {e}") from e

    def store(self, filepath: Union[str, Path], methods: List[CalibrationMethod]) -> None:
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        param_names = []
        for method in methods:
            for name in method.transformation_model_params:
                if name not in param_names:
                    param_names.append(name)

        rows = []
        for method in methods:
            row = {key: value for key, value in method.to_dict().items()
                   if key != 'transformation_model_params'}
            for name in param_names:
                value = method.transformation_model_params.get(name)
                row[PARAM_PREFIX + name] = "" if value is None else self._format_param(value)
            rows.append(row)

        df = pd.DataFrame(rows, columns=METHOD_COLUMNS + [PARAM_PREFIX + n for n in param_names])
        df.to_csv(filepath, sep=self._separator(filepath), index=False)
        logger.info("Stored %d quantitation methods to %s", len(methods), filepath.name)
