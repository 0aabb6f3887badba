"""
Export utilities for quantification reports and calibration results.
"""

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import joblib
import pandas as pd

from ..core.data_structures import BatchIssue, CalibrationResult, QuantificationReport
from ..core.exceptions import FileProcessingError
from .metrics import compare_calibrations

RESULT_COLUMNS = ['sample_name', 'group_id', 'component_name', 'calculated_concentration',
                  'concentration_units', 'bias', 'within_lod', 'within_loq']
ISSUE_COLUMNS = ['category', 'component_name', 'sample_name', 'message']


class ResultsExporter:
    """Export quantification and calibration results."""

    @staticmethod
    def report_to_dataframe(report: QuantificationReport) -> pd.DataFrame:
        """One row per quantified component; uncomputed concentrations are NaN."""
        return pd.DataFrame([r.to_dict() for r in report.results], columns=RESULT_COLUMNS)

    @staticmethod
    def issues_to_dataframe(issues: Iterable[BatchIssue]) -> pd.DataFrame:
        return pd.DataFrame([issue.to_dict() for issue in issues], columns=ISSUE_COLUMNS)

    @staticmethod
    def calibration_points_to_dataframe(result: CalibrationResult) -> pd.DataFrame:
        """
        Standards of one calibration, with the accepted ones flagged.

        Args:
            result: Calibration result

        Returns:
            DataFrame with sample name, concentration ratio, bias and
            whether the standard was used
        """
        rows = []
        for point, bias in zip(result.points, result.biases):
            rows.append({
                'component_name': result.component_name,
                'sample_name': point.sample_name,
                'actual_concentration': point.actual_concentration,
                'bias': bias,
                'used': True,
            })
        for point in result.excluded_points:
            rows.append({
                'component_name': result.component_name,
                'sample_name': point.sample_name,
                'actual_concentration': point.actual_concentration,
                'bias': float('nan'),
                'used': False,
            })
        return pd.DataFrame(rows, columns=['component_name', 'sample_name', 'actual_concentration',
                                           'bias', 'used'])

    @staticmethod
    def export_to_csv(
        report: QuantificationReport,
        output_dir: Union[str, Path],
        calibration_results: Optional[Dict[str, CalibrationResult]] = None
    ) -> List[Path]:
        """
        Export results to CSV files.

        Args:
            report: Quantification report
            output_dir: Output directory for CSV files
            calibration_results: Optional calibration results keyed by component

        Returns:
            Paths of the written files
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        written = [output_dir / 'quantification.csv', output_dir / 'issues.csv']
        ResultsExporter.report_to_dataframe(report).to_csv(written[0], index=False)
        ResultsExporter.issues_to_dataframe(report.issues).to_csv(written[1], index=False)

        if calibration_results:
            summary_path = output_dir / 'calibration_summary.csv'
            compare_calibrations(calibration_results.values(), sort_by=None).to_csv(summary_path, index=False)
            written.append(summary_path)

            points_path = output_dir / 'calibration_points.csv'
            pd.concat([ResultsExporter.calibration_points_to_dataframe(r)
                       for r in calibration_results.values()], ignore_index=True).to_csv(points_path, index=False)
            written.append(points_path)

        return written

    @staticmethod
    def save_calibration(calibration_results: Dict[str, CalibrationResult], filepath: Union[str, Path]):
        """Save calibration results with joblib."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(calibration_results, filepath, compress=3)

    @staticmethod
    def load_calibration(filepath: Union[str, Path]) -> Dict[str, CalibrationResult]:
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileProcessingError(f"File not found: {filepath}")
        return joblib.load(filepath)
