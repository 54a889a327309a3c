import argparse
import logging
import sys
from typing import Any, Callable, Dict, List, Optional
from dataclasses import dataclass, field
import pandas as pd

from analysis_config import AnalysisConfig, MAJORITY_THRESHOLD, configure_logging
from analysis_errors import AnalysisError
from statistical_engine import (
    CorrelationResult,
    LinearModelResult,
    StatisticalEngine,
    TTestResult,
)
from data_preparation.column_deriver import DerivedColumns, derive_percentage_columns
from data_preparation.data_loader import load_tracts, validate_tract_table
from data_preparation.table_sorter import sort_table, top_rows
from group_analysis.group_aggregator import GroupAggregateResult, aggregate_by_group
from group_analysis.group_comparison import two_sample_test

logger = logging.getLogger(__name__)


@dataclass
class FramingReport:
    subgroup: str
    columns: DerivedColumns
    table: pd.DataFrame
    correlation: Optional[CorrelationResult]
    linear_model: Optional[LinearModelResult]
    group_summary: Optional[GroupAggregateResult]
    comparison: Optional[TTestResult]
    errors: Dict[str, Dict[str, Any]] = field(default_factory=dict)


class TractAnalysisFramework:
    """Runs the derive / rank / correlate / fit / group / compare chain per subgroup"""

    def __init__(self, config: Optional[AnalysisConfig] = None, engine: Optional[StatisticalEngine] = None):
        self.config = config or AnalysisConfig()
        self.engine = engine or StatisticalEngine(
            default_alpha=self.config.significance_level,
            default_confidence=self.config.confidence_level
        )

    def prepare(self, table: pd.DataFrame) -> pd.DataFrame:
        """Validate a raw table against the configured columns"""
        return validate_tract_table(
            table,
            subgroups=self.config.subgroups,
            total_column=self.config.total_column,
            income_column=self.config.income_column,
            id_column=self.config.id_column
        )

    def derive_framing(self, table: pd.DataFrame, subgroup: str) -> pd.DataFrame:
        """Percentage and status columns for one subgroup, ranked by percentage descending"""
        columns = DerivedColumns.for_subgroup(subgroup)
        derived = derive_percentage_columns(
            table,
            numerator=subgroup,
            denominator=self.config.total_column,
            columns=columns,
            threshold=self.config.threshold
        )
        return sort_table(derived, columns.percent_column, ascending=False)

    def analyze_framing(self, table: pd.DataFrame, subgroup: str) -> FramingReport:
        """Full analysis of income against one subgroup's share of the population"""
        columns = DerivedColumns.for_subgroup(subgroup)
        derived = self.derive_framing(table, subgroup)
        income = self.config.income_column
        errors: Dict[str, Dict[str, Any]] = {}

        correlation = self._attempt('correlation', errors, lambda: self.engine.correlate(
            derived[columns.percent_column], derived[income]
        ))
        linear_model = self._attempt('linear_model', errors, lambda: self.engine.fit_linear_model(
            derived[columns.percent_column], derived[income]
        ))
        group_summary = aggregate_by_group(derived, columns.status_column, income)
        comparison = self._attempt('comparison', errors, lambda: two_sample_test(
            derived,
            columns.status_column,
            income,
            groups=self._comparison_order(derived, columns),
            engine=self.engine,
            confidence_level=self.config.confidence_level
        ))

        report = FramingReport(
            subgroup=subgroup,
            columns=columns,
            table=derived,
            correlation=correlation,
            linear_model=linear_model,
            group_summary=group_summary,
            comparison=comparison,
            errors=errors
        )
        logger.info("Framing %s: %s", subgroup, self.summarize(report))
        return report

    def run_all(self, table: pd.DataFrame) -> Dict[str, FramingReport]:
        """Analyze every configured subgroup against the same base table"""
        base = self.prepare(table)
        return {subgroup: self.analyze_framing(base, subgroup) for subgroup in self.config.subgroups}

    def top_tracts(self, report: FramingReport, n: int = 10) -> pd.DataFrame:
        """Highest-share tracts of a framing"""
        return top_rows(report.table, report.columns.percent_column, n=n)

    def summarize(self, report: FramingReport) -> Dict[str, Any]:
        """Headline numbers of a framing for logging and display"""
        summary: Dict[str, Any] = {'tracts': len(report.table)}

        if report.correlation is not None:
            summary['correlation'] = round(report.correlation.coefficient, 4)
            summary['correlation_p_value'] = report.correlation.p_value
        if report.linear_model is not None:
            summary['income_per_percentage_point'] = round(report.linear_model.slope, 2)
        if report.group_summary is not None:
            summary['group_means'] = {
                label: group.mean for label, group in report.group_summary.groups.items()
            }
        if report.comparison is not None:
            summary['mean_difference'] = round(report.comparison.difference, 2)
            summary['difference_p_value'] = report.comparison.p_value
        if report.errors:
            summary['errors'] = sorted(report.errors)

        return summary

    def describe(self, report: FramingReport) -> List[str]:
        """Plain-language sentences for readers without a statistics background"""
        lines = []
        subgroup = report.subgroup

        if report.correlation is not None:
            r = report.correlation
            direction = "higher" if r.coefficient > 0 else "lower"
            strength = "statistically significant" if r.significant else "not statistically significant"
            lines.append(
                f"Tracts with a larger {subgroup} share tend to have {direction} median household "
                f"income (r = {r.coefficient:.2f}); the relationship is {strength} (p = {r.p_value:.3g})."
            )
        if report.linear_model is not None:
            lines.append(
                f"Each additional percentage point of {subgroup} population is associated with a "
                f"change of {report.linear_model.slope:,.2f} in median household income."
            )
        if report.comparison is not None:
            t = report.comparison
            verdict = "a significant" if t.significant else "no significant"
            lines.append(
                f"{t.group_a} tracts average {t.mean_a:,.0f} and {t.group_b} tracts average "
                f"{t.mean_b:,.0f}: {verdict} difference of {t.difference:,.0f} "
                f"({self.config.confidence_level:.0%} CI {t.confidence_interval[0]:,.0f} to {t.confidence_interval[1]:,.0f}, "
                f"p = {t.p_value:.3g})."
            )
        for step, error in report.errors.items():
            lines.append(f"The {step.replace('_', ' ')} could not be computed: {error['message']}")

        return lines

    def _comparison_order(self, derived: pd.DataFrame, columns: DerivedColumns):
        present = set(derived[columns.status_column].dropna())
        order = (columns.majority_label, columns.minority_label)
        return order if present == set(order) else None

    def _attempt(self, step: str, errors: Dict[str, Dict[str, Any]], compute: Callable):
        try:
            return compute()
        except AnalysisError as exc:
            logger.warning("%s skipped: %s", step, exc)
            errors[step] = exc.to_dict()
            return None


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Income and demographic composition analysis of census tracts"
    )
    parser.add_argument("path", help="Tract CSV file")
    parser.add_argument("--sep", default=",", help="Field delimiter")
    parser.add_argument("--threshold", type=float, default=MAJORITY_THRESHOLD,
                        help="Majority threshold in percent (strictly greater than)")
    parser.add_argument("--top", type=int, default=5, help="Number of top tracts to show per framing")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args(argv)

    configure_logging(getattr(logging, args.log_level.upper(), logging.INFO))

    config = AnalysisConfig(threshold=args.threshold)
    framework = TractAnalysisFramework(config)

    try:
        table = load_tracts(args.path, sep=args.sep, subgroups=config.subgroups, id_column=config.id_column)
        reports = framework.run_all(table)
    except AnalysisError as exc:
        logger.error("Analysis failed: %s", exc)
        return 1

    for subgroup, report in reports.items():
        top = framework.top_tracts(report, n=args.top)
        logger.info(
            "Top %d tracts by %s:\n%s",
            args.top, report.columns.percent_column,
            top[[config.id_column, report.columns.percent_column, config.income_column]].to_string(index=False)
        )
        for line in framework.describe(report):
            logger.info("%s", line)

    return 0


if __name__ == "__main__":
    sys.exit(main())
