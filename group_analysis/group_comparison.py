import logging
import pandas as pd
from typing import Optional, Tuple

from analysis_errors import InvalidGroupCountError, MissingColumnError
from statistical_engine import StatisticalEngine, TTestResult

logger = logging.getLogger(__name__)


def two_sample_test(
    table: pd.DataFrame,
    group_column: str,
    value_column: str,
    groups: Optional[Tuple[str, str]] = None,
    engine: Optional[StatisticalEngine] = None,
    confidence_level: float = None
) -> TTestResult:
    """
    Welch's t-test of value_column between the two categories of group_column.

    The column must hold exactly two distinct labels (missing labels are
    ignored). Group A is the first label seen unless ``groups`` gives the
    order explicitly; the reported difference is mean A minus mean B.
    """
    engine = engine or StatisticalEngine()

    missing = [name for name in (group_column, value_column) if name not in table.columns]
    if missing:
        raise MissingColumnError(
            f"Missing column(s): {', '.join(missing)}",
            context={'missing': missing, 'available': list(table.columns)}
        )

    labels = table[group_column]
    present = list(pd.unique(labels.dropna()))

    if len(present) != 2:
        raise InvalidGroupCountError(
            f"Column '{group_column}' must hold exactly 2 groups, found {len(present)}",
            context={'column': group_column, 'groups': [str(label) for label in present]}
        )

    if groups is not None:
        if set(groups) != set(present):
            raise InvalidGroupCountError(
                f"Requested groups {list(groups)} do not match {present}",
                context={'column': group_column, 'requested': list(groups), 'groups': present}
            )
        group_a, group_b = groups
    else:
        group_a, group_b = present

    in_a = (labels == group_a).fillna(False)
    in_b = (labels == group_b).fillna(False)

    logger.debug(
        "two_sample_test: %s by %s (%s=%d rows, %s=%d rows)",
        value_column, group_column, group_a, int(in_a.sum()), group_b, int(in_b.sum())
    )

    return engine.welch_t_test(
        table.loc[in_a, value_column],
        table.loc[in_b, value_column],
        labels=(str(group_a), str(group_b)),
        confidence_level=confidence_level
    )
