import logging
import pandas as pd

from analysis_errors import MissingColumnError, SchemaMismatchError

logger = logging.getLogger(__name__)


def sort_table(table: pd.DataFrame, key: str, ascending: bool = True) -> pd.DataFrame:
    """
    Stable sort of the table by one column.

    Ties keep their prior relative order in both directions, and missing
    values always sort after every real number.
    """
    if key not in table.columns:
        raise MissingColumnError(
            f"Cannot sort by missing column '{key}'",
            context={'column': key, 'available': list(table.columns)}
        )

    logger.debug("Sorting %d rows by %s (%s)", len(table), key, "asc" if ascending else "desc")
    return table.sort_values(key, ascending=ascending, kind="mergesort", na_position="last")


def top_rows(table: pd.DataFrame, key: str, n: int = 10, ascending: bool = False) -> pd.DataFrame:
    """First n rows after ranking by key (largest first by default)"""
    if n < 0:
        raise SchemaMismatchError("Row count must be non-negative", context={'n': n})
    return sort_table(table, key, ascending=ascending).head(n)
