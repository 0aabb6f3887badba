"""
Absolute quantitation of analytes from calibration standards.

Builds calibration curves from standards (optionally trimming outlying
standards), and applies them to unknown samples using each analyte's
internal standard.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
from joblib import Parallel, delayed

from ..core.config import CalibrationSearchConfig
from ..core.data_structures import (
    BatchIssue,
    CalibrationPoint,
    CalibrationResult,
    DataPoint,
    DataPointSet,
    Feature,
    FeatureGroup,
    FeatureMap,
    IssueCategory,
    QuantificationReport,
    QuantificationResult,
)
from ..core.exceptions import (
    ArithmeticDegenerateError,
    CalibrationCancelledError,
    DataValidationError,
    FitInfeasibleError,
    QuantitationError,
    WeightDomainError,
)
from ..utils.metrics import coefficient_of_determination
from .context import QuantitationContext
from .method import CalibrationMethod

logger = logging.getLogger(__name__)

CALCULATED_CONCENTRATION = 'calculated_concentration'
CONCENTRATION_UNITS = 'concentration_units'


class AbsoluteQuantitation:
    """Calibration curve fitting and quantification of unknowns."""

    def __init__(self, config: Optional[CalibrationSearchConfig] = None):
        """
        Initialize quantitation.

        Args:
            config: Acceptance thresholds for calibration searches
        """
        self.config = config or CalibrationSearchConfig()
        self.config.validate()

    # ------------------------------------------------------------------
    # Ratio and bias
    # ------------------------------------------------------------------

    def calculate_ratio(self,
                        component: Optional[Feature],
                        is_component: Optional[Feature],
                        feature_name: str) -> float:
        """
        Ratio of a component's feature value to its internal standard's.

        A zero internal standard value gives ``inf``. If only the component
        has the value it is returned as is; if neither has it, 0.0.
        """
        has_component = component is not None and component.has_value(feature_name)
        has_is = is_component is not None and is_component.has_value(feature_name)

        if has_component and has_is:
            with np.errstate(divide='ignore', invalid='ignore'):
                return float(np.float64(component.get_value(feature_name))
                             / np.float64(is_component.get_value(feature_name)))

        if has_component:
            logger.warning("No IS found for component %s", component.native_id)
            return float(component.get_value(feature_name))

        logger.warning("Feature value %s not found for components %s and %s", feature_name,
                       component.native_id if component is not None else None,
                       is_component.native_id if is_component is not None else None)
        return 0.0

    @staticmethod
    def _missing_feature_values(component: Optional[Feature],
                                is_component: Optional[Feature],
                                feature_name: str) -> List[str]:
        """Native ids of the given features that lack ``feature_name``."""
        return [f.native_id for f in (component, is_component)
                if f is not None and not f.has_value(feature_name)]

    def calculate_bias(self, actual_concentration: float, calculated_concentration: float) -> float:
        """
        Percent bias of a calculated concentration.

        Raises:
            ArithmeticDegenerateError: If the actual concentration is zero
        """
        if actual_concentration == 0:
            raise ArithmeticDegenerateError("Bias is undefined for a zero actual concentration")
        return abs(actual_concentration - calculated_concentration) / actual_concentration * 100

    # ------------------------------------------------------------------
    # Fitting and applying calibrations
    # ------------------------------------------------------------------

    def _calibration_data(self, points: Iterable[CalibrationPoint], feature_name: str) -> DataPointSet:
        """Pair each standard's intensity ratio with its concentration ratio."""
        data = []
        for point in points:
            ratio = self.calculate_ratio(point.feature, point.is_feature, feature_name)
            if not np.isfinite(ratio):
                logger.warning("Skipping standard %s of %s with non-finite ratio %s",
                               point.sample_name, point.component_name, ratio)
                continue
            data.append(DataPoint(ratio, point.actual_concentration_ratio, point.sample_name))
        return data

    def fit_calibration(self,
                        points: List[CalibrationPoint],
                        feature_name: str,
                        transformation_model: str,
                        transformation_model_params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Fit a calibration curve to standards.

        Args:
            points: Calibration standards of one component
            feature_name: Feature value used for the intensity ratio
            transformation_model: Transformation model name
            transformation_model_params: Model parameters

        Returns:
            Fitted transformation model parameters
        """
        data = self._calibration_data(points, feature_name)
        method = CalibrationMethod(component_name=points[0].component_name if points else "")
        return method.fit(transformation_model, data, transformation_model_params)

    def apply_calibration(self,
                          component: Feature,
                          is_component: Optional[Feature],
                          feature_name: str,
                          transformation_model: str,
                          transformation_model_params: Dict[str, Any]) -> float:
        """
        Calculate the concentration of a component.

        Negative results are clamped to zero.
        """
        ratio = self.calculate_ratio(component, is_component, feature_name)
        concentration = CalibrationMethod().evaluate(
            transformation_model, ratio, transformation_model_params)
        if concentration < 0.0:
            concentration = 0.0
        return concentration

    def calculate_bias_and_r(self,
                             points: List[CalibrationPoint],
                             feature_name: str,
                             transformation_model: str,
                             transformation_model_params: Dict[str, Any]) -> Tuple[List[float], float]:
        """
        Per-standard bias and overall R² of a fitted calibration.

        Returns:
            Tuple of (biases in percent, squared Pearson correlation of the
            actual and calculated concentration ratios)
        """
        actual, calculated, biases = [], [], []
        for point in points:
            concentration = self.apply_calibration(point.feature, point.is_feature, feature_name,
                                                   transformation_model, transformation_model_params)
            actual_ratio = point.actual_concentration_ratio
            biases.append(self.calculate_bias(actual_ratio, concentration))
            actual.append(actual_ratio)
            calculated.append(concentration)
        return biases, coefficient_of_determination(actual, calculated)

    # ------------------------------------------------------------------
    # Calibration search
    # ------------------------------------------------------------------

    def _usable_standards(self, points: List[CalibrationPoint]) -> Tuple[List[CalibrationPoint],
                                                                         List[CalibrationPoint]]:
        usable, excluded = [], []
        for point in points:
            try:
                ratio = point.actual_concentration_ratio
            except ArithmeticDegenerateError:
                ratio = 0.0
            if ratio == 0:
                logger.warning("Excluding zero-concentration standard %s of %s",
                               point.sample_name, point.component_name)
                excluded.append(point)
            else:
                usable.append(point)
        return usable, excluded

    def optimize_calibration_curve_brute_force(
        self,
        points: List[CalibrationPoint],
        feature_name: str,
        transformation_model: str,
        transformation_model_params: Dict[str, Any],
        should_cancel: Optional[Callable[[], bool]] = None
    ) -> CalibrationResult:
        """
        Find a calibration curve by trimming standards from the ends.

        Standards are sorted by concentration. Starting with all of them, a
        contiguous window of decreasing size is slid across the standards and
        the first window whose maximum bias and R² meet the configured
        thresholds is accepted.

        Args:
            points: Calibration standards of one component
            feature_name: Feature value used for the intensity ratio
            transformation_model: Transformation model name
            transformation_model_params: Model parameters
            should_cancel: Optional callback checked between window sizes

        Returns:
            CalibrationResult of the accepted window

        Raises:
            FitInfeasibleError: If no window meets the thresholds
            CalibrationCancelledError: If cancelled
        """
        config = self.config
        component_name = points[0].component_name if points else ""
        usable, zero_standards = self._usable_standards(points)
        ordered = sorted(usable, key=lambda p: p.actual_concentration)
        n_total = len(ordered)

        thresholds = {'min_points': config.min_points, 'max_bias': config.max_bias,
                      'min_r2': config.min_r2}
        best_seen = {'r2': 0.0, 'max_bias': float('inf'), 'n_points': 0}

        for n_points in range(n_total, config.min_points - 1, -1):
            if should_cancel is not None and should_cancel():
                raise CalibrationCancelledError(f"Calibration search for {component_name} cancelled")

            for start in range(n_total - n_points + 1):
                window = ordered[start:start + n_points]
                try:
                    params = self.fit_calibration(window, feature_name, transformation_model,
                                                  transformation_model_params)
                    biases, r2 = self.calculate_bias_and_r(window, feature_name,
                                                           transformation_model, params)
                except (DataValidationError, WeightDomainError) as e:
                    logger.debug("%s: window %d+%d could not be fitted: %s",
                                 component_name, start, n_points, e)
                    continue

                max_bias = float(np.max(biases))
                logger.debug("%s: window %d+%d max bias %.2f, R² %.4f",
                             component_name, start, n_points, max_bias, r2)

                if max_bias <= config.max_bias and r2 >= config.min_r2:
                    logger.info("%s: accepted %d of %d standards (R² %.4f, max bias %.2f%%)",
                                component_name, n_points, len(points), r2, max_bias)
                    return CalibrationResult(
                        component_name=component_name,
                        transformation_model=transformation_model,
                        transformation_model_params=params,
                        points=window,
                        biases=biases,
                        r2=r2,
                        excluded_points=ordered[:start] + ordered[start + n_points:] + zero_standards,
                    )

                if r2 > best_seen['r2'] or (r2 == best_seen['r2'] and max_bias < best_seen['max_bias']):
                    best_seen = {'r2': r2, 'max_bias': max_bias, 'n_points': n_points}

        if n_total < config.min_points:
            unmet = ['min_points']
        else:
            unmet = [name for name, failed in (('max_bias', best_seen['max_bias'] > config.max_bias),
                                                ('min_r2', best_seen['r2'] < config.min_r2)) if failed]
        raise FitInfeasibleError(
            f"Calibration of {component_name} could not reach max bias <= {config.max_bias}% "
            f"and R² >= {config.min_r2} with at least {config.min_points} of {n_total} standards",
            thresholds=thresholds,
            achieved=best_seen,
            unmet=unmet,
            component_name=component_name,
        )

    def _optimize_method(self,
                         method: CalibrationMethod,
                         points: List[CalibrationPoint],
                         should_cancel: Optional[Callable[[], bool]]):
        name = method.component_name
        if not method.has_supported_model:
            return None, [BatchIssue(IssueCategory.CONFIGURATION_DEGRADED,
                                     f"Transformation model '{method.transformation_model}' "
                                     "is not supported, calibration skipped", name)]

        issues = []
        for point in points:
            missing = self._missing_feature_values(point.feature, point.is_feature, method.feature_name)
            if missing:
                issues.append(BatchIssue(IssueCategory.CONFIGURATION_DEGRADED,
                                         f"Feature value {method.feature_name} not found for "
                                         f"{', '.join(missing)}", name, point.sample_name))

        try:
            result = self.optimize_calibration_curve_brute_force(
                points, method.feature_name, method.transformation_model,
                method.transformation_model_params, should_cancel)
            return result, issues
        except CalibrationCancelledError:
            raise
        except FitInfeasibleError as e:
            issue = BatchIssue(IssueCategory.FIT_INFEASIBLE, str(e), name)
        except ArithmeticDegenerateError as e:
            issue = BatchIssue(IssueCategory.ARITHMETIC_DEGENERATE, str(e), name)
        except WeightDomainError as e:
            issue = BatchIssue(IssueCategory.DOMAIN_ERROR, str(e), name)
        except (QuantitationError, ValueError, TypeError) as e:
            issue = BatchIssue(IssueCategory.CONFIGURATION_DEGRADED, str(e), name)
        return None, issues + [issue]

    def optimize_calibration_curves(
        self,
        standards: Mapping[str, List[CalibrationPoint]],
        methods: Iterable[CalibrationMethod],
        should_cancel: Optional[Callable[[], bool]] = None
    ) -> Tuple[Dict[str, CalibrationResult], List[BatchIssue]]:
        """
        Optimize the calibration curve of every method that has standards.

        Each accepted result updates its method's parameters and fit
        statistics. Analytes that cannot be calibrated, or whose method names an
        unsupported transformation model, are reported as issues and leave
        their method untouched. Standards lacking the feature value are
        reported too.

        Args:
            standards: Calibration points keyed by component name
            methods: Methods to calibrate
            should_cancel: Optional callback checked between window sizes

        Returns:
            Tuple of (results keyed by component name, issues)
        """
        issues: List[BatchIssue] = []
        tasks = []
        for method in methods:
            points = standards.get(method.component_name)
            if not points:
                logger.warning("No standards found for component %s", method.component_name)
                issues.append(BatchIssue(IssueCategory.CONFIGURATION_DEGRADED,
                                         "No calibration standards", method.component_name))
                continue
            tasks.append((method, points))

        outcomes = Parallel(n_jobs=self.config.n_jobs, prefer="threads")(
            delayed(self._optimize_method)(method, points, should_cancel)
            for method, points in tasks
        )

        results: Dict[str, CalibrationResult] = {}
        for (method, _), (result, method_issues) in zip(tasks, outcomes):
            issues.extend(method_issues)
            if result is None:
                logger.warning("Calibration failed for %s: %s", method.component_name,
                               method_issues[-1].message)
                continue
            method.transformation_model_params = result.transformation_model_params
            method.n_points = result.n_points
            method.correlation_coefficient = result.r2
            results[method.component_name] = result

        logger.info("Calibrated %d of %d components", len(results), len(tasks))
        return results, issues

    # ------------------------------------------------------------------
    # Quantification of unknowns
    # ------------------------------------------------------------------

    @staticmethod
    def _find_internal_standard(unknowns: FeatureMap,
                                group: FeatureGroup,
                                is_name: str) -> Optional[Feature]:
        """Look for the internal standard in the same group first, then in all others."""
        feature = group.find(is_name)
        if feature is not None:
            return feature
        for other in unknowns:
            if other is group:
                continue
            feature = other.find(is_name)
            if feature is not None:
                return feature
        return None

    @staticmethod
    def _mark_uncomputed(feature: Feature) -> None:
        feature.set_value(CALCULATED_CONCENTRATION, "")
        feature.set_value(CONCENTRATION_UNITS, "")

    def _fallbacks(self,
                   method: CalibrationMethod,
                   feature: Feature,
                   is_feature: Optional[Feature]) -> List[str]:
        """Describe the defaults a quantification of ``feature`` falls back to."""
        messages = []
        if not method.has_supported_model:
            messages.append(f"Transformation model '{method.transformation_model}' is not supported, "
                            "the identity model was used")
        missing = self._missing_feature_values(feature, is_feature, method.feature_name)
        if missing:
            messages.append(f"Feature value {method.feature_name} not found for {', '.join(missing)}")
        return messages

    def quantify_components(self,
                            unknowns: FeatureMap,
                            context: QuantitationContext,
                            sample_name: str = "",
                            known_concentrations: Optional[Mapping[str, float]] = None
                            ) -> QuantificationReport:
        """
        Calculate the concentration of every component in an unknown sample.

        The calculated concentration and its units are attached to each
        sub-feature. Components without a method, or whose internal standard
        cannot be found, are left uncomputed and reported as issues. An
        unsupported transformation model or a missing feature value is
        reported as well, but the concentration is still calculated, from the
        identity model or from the fallback value of ``calculate_ratio``.

        The calibration curve maps intensity ratios to concentration ratios
        (analyte / internal standard actual concentration), so for analytes
        with an internal standard the calculated concentration is such a
        ratio.

        Args:
            unknowns: Feature groups of one sample
            context: Calibration methods keyed by component name
            sample_name: Name used in results and issues
            known_concentrations: Optional expected values used to report a
                bias (e.g. for QC samples). They are compared with the
                calculated concentration as is, so they must be concentration
                ratios for analytes with an internal standard.

        Returns:
            QuantificationReport for the sample
        """
        report = QuantificationReport()

        for group in unknowns:
            for feature in group.subordinates:
                name = feature.native_id
                method = context.get(name)

                if method is None:
                    logger.info("Component %s does not have a quantitation method, "
                                "no concentration will be calculated", name)
                    self._mark_uncomputed(feature)
                    report.results.append(QuantificationResult(name, None, "", group.group_id, sample_name))
                    report.issues.append(BatchIssue(IssueCategory.CONFIGURATION_DEGRADED,
                                                    "No quantitation method", name, sample_name))
                    continue

                is_feature = None
                if method.has_internal_standard:
                    is_feature = self._find_internal_standard(unknowns, group, method.is_name)
                    if is_feature is None:
                        logger.warning("Component %s IS %s was not found, "
                                       "no concentration will be calculated", name, method.is_name)
                        self._mark_uncomputed(feature)
                        report.results.append(QuantificationResult(
                            name, None, method.concentration_units, group.group_id, sample_name))
                        report.issues.append(BatchIssue(IssueCategory.CONFIGURATION_DEGRADED,
                                                        f"Internal standard {method.is_name} not found",
                                                        name, sample_name))
                        continue

                for message in self._fallbacks(method, feature, is_feature):
                    logger.warning("%s: %s", name, message)
                    report.issues.append(BatchIssue(IssueCategory.CONFIGURATION_DEGRADED,
                                                    message, name, sample_name))

                try:
                    concentration = self.apply_calibration(
                        feature, is_feature, method.feature_name,
                        method.transformation_model, method.transformation_model_params)
                except (QuantitationError, KeyError, ValueError, TypeError) as e:
                    category = (IssueCategory.DOMAIN_ERROR if isinstance(e, WeightDomainError)
                                else IssueCategory.CONFIGURATION_DEGRADED)
                    logger.warning("Could not calculate the concentration of %s: %s", name, e)
                    self._mark_uncomputed(feature)
                    report.results.append(QuantificationResult(
                        name, None, method.concentration_units, group.group_id, sample_name))
                    report.issues.append(BatchIssue(category, str(e), name, sample_name))
                    continue

                feature.set_value(CALCULATED_CONCENTRATION, concentration)
                feature.set_value(CONCENTRATION_UNITS, method.concentration_units)

                bias = None
                known = (known_concentrations or {}).get(name)
                if known:
                    bias = self.calculate_bias(known, concentration)

                report.results.append(QuantificationResult(
                    component_name=name,
                    calculated_concentration=concentration,
                    concentration_units=method.concentration_units,
                    group_id=group.group_id,
                    sample_name=sample_name,
                    bias=bias,
                    within_lod=method.check_lod(concentration),
                    within_loq=method.check_loq(concentration),
                ))

        return report

    def quantify_samples(self,
                         samples: Mapping[str, FeatureMap],
                         context: QuantitationContext) -> QuantificationReport:
        """
        Quantify a batch of samples, isolating failures per sample.

        Args:
            samples: Feature maps keyed by sample name
            context: Calibration methods keyed by component name

        Returns:
            Aggregated QuantificationReport
        """
        report = QuantificationReport()
        for sample_name, unknowns in samples.items():
            try:
                report.extend(self.quantify_components(unknowns, context, sample_name))
            except (QuantitationError, ValueError, TypeError) as e:
                logger.error("Quantification of sample %s failed: %s", sample_name, e)
                report.issues.append(BatchIssue(IssueCategory.CONFIGURATION_DEGRADED, str(e),
                                                sample_name=sample_name))
        logger.info("Quantified %d samples: %s", len(samples), report.summary())
        return report
