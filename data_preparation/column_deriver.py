import logging
import numpy as np
import pandas as pd
from typing import Optional
from dataclasses import dataclass

from analysis_config import MAJORITY_THRESHOLD, PERCENT_DECIMALS, TOTAL_COLUMN
from analysis_errors import MissingColumnError, SchemaMismatchError

logger = logging.getLogger(__name__)


@dataclass
class DerivedColumns:
    percent_column: str
    status_column: str
    majority_label: str
    minority_label: str

    @classmethod
    def for_subgroup(cls, subgroup: str) -> "DerivedColumns":
        """Conventional column names and labels for a subgroup count column"""
        return cls(
            percent_column=f"pct_{subgroup}",
            status_column=f"{subgroup}_status",
            majority_label=f"majority_{subgroup}",
            minority_label=f"not_majority_{subgroup}"
        )


def derive_percentage_columns(
    table: pd.DataFrame,
    numerator: str,
    denominator: str = TOTAL_COLUMN,
    columns: Optional[DerivedColumns] = None,
    threshold: float = MAJORITY_THRESHOLD
) -> pd.DataFrame:
    """
    Add a rounded percentage column and a majority status column.

    The percentage is ``numerator / denominator * 100`` rounded half-to-even
    to two decimals. Rows with a zero denominator keep their place in the
    output with a missing percentage and a missing status. A row is labelled
    majority only when its rounded percentage is strictly greater than
    ``threshold``.

    Returns a new DataFrame; ``table`` is left untouched.
    """
    columns = columns or DerivedColumns.for_subgroup(numerator)
    _require_numeric(table, [numerator, denominator])

    counts = table[numerator].astype("Float64")
    totals = table[denominator].astype("Float64")

    zero_totals = (totals == 0).fillna(False)
    if zero_totals.any():
        logger.warning(
            "%d row(s) have %s == 0; %s left undefined",
            int(zero_totals.sum()), denominator, columns.percent_column
        )

    percent = (counts / totals.mask(zero_totals) * 100).round(PERCENT_DECIMALS)

    is_majority = (percent > threshold).fillna(False).to_numpy(dtype=bool)
    status = pd.Series(
        np.where(is_majority, columns.majority_label, columns.minority_label),
        index=table.index,
        dtype="string"
    ).mask(percent.isna())

    logger.debug(
        "Derived %s and %s from %s/%s over %d rows",
        columns.percent_column, columns.status_column, numerator, denominator, len(table)
    )

    return table.assign(**{columns.percent_column: percent, columns.status_column: status})


def _require_numeric(table: pd.DataFrame, names) -> None:
    missing = [name for name in names if name not in table.columns]
    if missing:
        raise MissingColumnError(
            f"Missing column(s): {', '.join(missing)}",
            context={'missing': missing, 'available': list(table.columns)}
        )

    for name in names:
        if not pd.api.types.is_numeric_dtype(table[name]):
            raise SchemaMismatchError(
                f"Column '{name}' must be numeric",
                context={'column': name, 'dtype': str(table[name].dtype)}
            )
