import logging
import math
import numpy as np
import pandas as pd
from scipy import stats
import statsmodels.api as sm
from statsmodels.stats.power import TTestIndPower
from typing import Iterable, Tuple
from dataclasses import dataclass

from analysis_config import CONFIDENCE_LEVEL, SIGNIFICANCE_LEVEL
from analysis_errors import (
    DivisionByZeroError,
    InsufficientSampleError,
    SchemaMismatchError,
)

logger = logging.getLogger(__name__)


@dataclass
class CorrelationResult:
    coefficient: float
    p_value: float
    confidence_interval: Tuple[float, float]
    degrees_of_freedom: int
    t_statistic: float
    n: int
    significant: bool


@dataclass
class LinearModelResult:
    intercept: float
    slope: float
    n: int

    def predict(self, x: float) -> float:
        """Fitted response at x"""
        return self.intercept + self.slope * x


@dataclass
class LinearModelDiagnostics:
    intercept: float
    slope: float
    r_squared: float
    intercept_std_error: float
    slope_std_error: float
    intercept_p_value: float
    slope_p_value: float
    n: int


@dataclass
class TTestResult:
    group_a: str
    group_b: str
    mean_a: float
    mean_b: float
    difference: float
    confidence_interval: Tuple[float, float]
    p_value: float
    degrees_of_freedom: float
    t_statistic: float
    count_a: int
    count_b: int
    variance_a: float
    variance_b: float
    significant: bool
    statistical_power: float


class StatisticalEngine:
    """Closed-form correlation, regression and two-sample tests over numeric sequences"""

    def __init__(
        self,
        default_alpha: float = SIGNIFICANCE_LEVEL,
        default_confidence: float = CONFIDENCE_LEVEL
    ):
        self.default_alpha = default_alpha
        self.default_confidence = default_confidence

    def correlate(
        self,
        xs: Iterable,
        ys: Iterable,
        confidence_level: float = None
    ) -> CorrelationResult:
        """Pearson's r with a t-test of r = 0 and a Fisher z confidence interval"""
        confidence = confidence_level or self.default_confidence
        x, y = self._paired_sample(xs, ys)
        n = len(x)

        if n < 3:
            raise InsufficientSampleError(
                "Correlation needs at least 3 complete pairs",
                context={'n': n, 'required': 3}
            )

        # A constant float column leaves rounding residue in its sum of squares
        if np.ptp(x) == 0 or np.ptp(y) == 0:
            raise DivisionByZeroError(
                "Correlation is undefined for a sequence with zero variance",
                context={'n': n, 'range_x': float(np.ptp(x)), 'range_y': float(np.ptp(y))}
            )

        dx = x - x.mean()
        dy = y - y.mean()
        sxx = float(np.sum(dx ** 2))
        syy = float(np.sum(dy ** 2))
        sxy = float(np.sum(dx * dy))

        r = sxy / math.sqrt(sxx * syy)
        r = min(max(r, -1.0), 1.0)
        dof = n - 2

        if abs(r) == 1.0:
            t_stat = math.copysign(math.inf, r)
            p_value = 0.0
        else:
            t_stat = r * math.sqrt(dof / (1 - r ** 2))
            p_value = float(min(2 * stats.t.sf(abs(t_stat), dof), 1.0))

        confidence_interval = self._fisher_interval(r, n, confidence)

        logger.debug("correlate: n=%d r=%.6f t=%.4f p=%.6g", n, r, t_stat, p_value)

        return CorrelationResult(
            coefficient=r,
            p_value=p_value,
            confidence_interval=confidence_interval,
            degrees_of_freedom=dof,
            t_statistic=t_stat,
            n=n,
            significant=p_value < self.default_alpha
        )

    def fit_linear_model(self, xs: Iterable, ys: Iterable) -> LinearModelResult:
        """Ordinary least squares fit of y = intercept + slope * x"""
        x, y = self._paired_sample(xs, ys)
        n = len(x)

        if n < 2:
            raise InsufficientSampleError(
                "A linear fit needs at least 2 complete pairs",
                context={'n': n, 'required': 2}
            )

        x_mean = x.mean()
        y_mean = y.mean()

        if np.ptp(x) == 0:
            raise DivisionByZeroError(
                "Predictor has zero variance; slope is undefined",
                context={'n': n, 'predictor_value': float(x[0])}
            )

        sxx = float(np.sum((x - x_mean) ** 2))

        slope = float(np.sum((x - x_mean) * (y - y_mean))) / sxx
        intercept = float(y_mean - slope * x_mean)

        logger.debug("fit_linear_model: n=%d intercept=%.6f slope=%.6f", n, intercept, slope)

        return LinearModelResult(intercept=intercept, slope=slope, n=n)

    def describe_linear_model(self, xs: Iterable, ys: Iterable) -> LinearModelDiagnostics:
        """Standard errors, p-values and R-squared for the single-predictor OLS fit"""
        # Validates sample size and predictor variance before statsmodels sees the data
        self.fit_linear_model(xs, ys)
        x, y = self._paired_sample(xs, ys)

        if len(x) < 3:
            raise InsufficientSampleError(
                "Model diagnostics need at least 3 complete pairs",
                context={'n': len(x), 'required': 3}
            )

        model = sm.OLS(y, sm.add_constant(x)).fit()

        return LinearModelDiagnostics(
            intercept=float(model.params[0]),
            slope=float(model.params[1]),
            r_squared=float(model.rsquared),
            intercept_std_error=float(model.bse[0]),
            slope_std_error=float(model.bse[1]),
            intercept_p_value=float(model.pvalues[0]),
            slope_p_value=float(model.pvalues[1]),
            n=int(model.nobs)
        )

    def welch_t_test(
        self,
        sample_a: Iterable,
        sample_b: Iterable,
        labels: Tuple[str, str] = ("a", "b"),
        confidence_level: float = None
    ) -> TTestResult:
        """Two-sided Welch's t-test for a difference in means (unequal variances)"""
        confidence = confidence_level or self.default_confidence
        a = self._complete_values(sample_a, labels[0])
        b = self._complete_values(sample_b, labels[1])
        n_a, n_b = len(a), len(b)

        if n_a < 2 or n_b < 2:
            raise InsufficientSampleError(
                "Each group needs at least 2 values to estimate its variance",
                context={'groups': list(labels), 'counts': [n_a, n_b], 'required': 2}
            )

        mean_a, mean_b = float(a.mean()), float(b.mean())
        var_a, var_b = self._sample_variance(a), self._sample_variance(b)
        se_a, se_b = var_a / n_a, var_b / n_b
        se_sq = se_a + se_b

        if se_sq == 0:
            raise DivisionByZeroError(
                "Both groups have zero variance; the t statistic is undefined",
                context={'groups': list(labels), 'means': [mean_a, mean_b]}
            )

        difference = mean_a - mean_b
        std_error = math.sqrt(se_sq)
        t_stat = difference / std_error

        # Welch-Satterthwaite
        dof = se_sq ** 2 / (se_a ** 2 / (n_a - 1) + se_b ** 2 / (n_b - 1))

        p_value = float(min(2 * stats.t.sf(abs(t_stat), dof), 1.0))
        t_critical = stats.t.ppf(0.5 + confidence / 2, dof)
        confidence_interval = (
            float(difference - t_critical * std_error),
            float(difference + t_critical * std_error)
        )

        power = self.calculate_statistical_power(
            observed_effect_size=self._cohens_d(difference, var_a, var_b, n_a, n_b),
            nobs_a=n_a,
            nobs_b=n_b
        )

        logger.debug(
            "welch_t_test: %s (n=%d, mean=%.4f) vs %s (n=%d, mean=%.4f) t=%.4f df=%.2f p=%.6g",
            labels[0], n_a, mean_a, labels[1], n_b, mean_b, t_stat, dof, p_value
        )

        return TTestResult(
            group_a=labels[0],
            group_b=labels[1],
            mean_a=mean_a,
            mean_b=mean_b,
            difference=difference,
            confidence_interval=confidence_interval,
            p_value=p_value,
            degrees_of_freedom=float(dof),
            t_statistic=float(t_stat),
            count_a=n_a,
            count_b=n_b,
            variance_a=var_a,
            variance_b=var_b,
            significant=p_value < self.default_alpha,
            statistical_power=power
        )

    def calculate_statistical_power(
        self,
        observed_effect_size: float,
        nobs_a: int,
        nobs_b: int,
        significance_level: float = None
    ) -> float:
        """Power of a two-sided independent-samples t-test for the observed effect"""
        alpha = significance_level or self.default_alpha
        power = TTestIndPower().power(
            effect_size=abs(observed_effect_size),
            nobs1=nobs_a,
            alpha=alpha,
            ratio=nobs_b / nobs_a,
            alternative='two-sided'
        )
        return float(power)

    def _fisher_interval(self, r: float, n: int, confidence: float) -> Tuple[float, float]:
        """Confidence interval for r via Fisher's z-transform"""
        if abs(r) == 1.0:
            return (r, r)
        if n <= 3:
            return (-1.0, 1.0)

        z = np.arctanh(r)
        z_critical = stats.norm.ppf(0.5 + confidence / 2)
        margin = z_critical / math.sqrt(n - 3)
        return (float(np.tanh(z - margin)), float(np.tanh(z + margin)))

    def _cohens_d(self, difference: float, var_a: float, var_b: float, n_a: int, n_b: int) -> float:
        """Mean difference in units of the pooled standard deviation"""
        pooled_std = math.sqrt(((n_a - 1) * var_a + (n_b - 1) * var_b) / (n_a + n_b - 2))
        if not pooled_std > 0:
            return 0.0
        return difference / pooled_std

    def _sample_variance(self, values: np.ndarray) -> float:
        """Variance with divisor n - 1, exactly zero when every value is equal"""
        if np.ptp(values) == 0:
            return 0.0
        return float(values.var(ddof=1))

    def _paired_sample(self, xs: Iterable, ys: Iterable) -> Tuple[np.ndarray, np.ndarray]:
        """Align two sequences by position and drop pairs with a missing value"""
        x = self._as_nullable(xs, 'x')
        y = self._as_nullable(ys, 'y')

        if len(x) != len(y):
            raise SchemaMismatchError(
                "Paired sequences must have equal length",
                context={'len_x': len(x), 'len_y': len(y)}
            )

        complete = x.notna() & y.notna()
        dropped = int((~complete).sum())
        if dropped:
            logger.warning("Excluded %d of %d pairs with a missing value", dropped, len(x))

        return x[complete].to_numpy(dtype=float), y[complete].to_numpy(dtype=float)

    def _complete_values(self, values: Iterable, name: str) -> np.ndarray:
        series = self._as_nullable(values, name)
        return series.dropna().to_numpy(dtype=float)

    def _as_nullable(self, values: Iterable, name: str) -> pd.Series:
        """Positional Float64 series in which every missing marker is pd.NA"""
        try:
            return pd.Series(np.asarray(list(values), dtype=object)).astype("Float64")
        except (TypeError, ValueError) as exc:
            raise SchemaMismatchError(
                f"Sequence '{name}' is not numeric",
                context={'sequence': name, 'reason': str(exc)}
            ) from exc
