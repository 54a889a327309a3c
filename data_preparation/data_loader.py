"""Loading and validation of census-tract tables.

Reads a delimited file of tract rows with pandas and checks the columns the
analysis relies on: the identifier, the total population, the subgroup
counts and the median household income. Counts become nullable integers
(``Int64``) and income becomes ``Float64``, so blank cells are carried as
``pd.NA`` rather than silently turning into floats.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from analysis_config import (
    ID_COLUMN,
    INCOME_COLUMN,
    SUBGROUP_COLUMNS,
    TOTAL_COLUMN,
)
from analysis_errors import MissingColumnError, SchemaMismatchError

logger = logging.getLogger(__name__)


def load_tracts(
    path: Union[str, Path],
    sep: str = ",",
    subgroups: Optional[List[str]] = None,
    id_column: str = ID_COLUMN
) -> pd.DataFrame:
    """
    Load a tract file and return a validated table.

    Parameters
    ----------
    path : str or Path
        Delimited text file with a header row.
    sep : str, optional
        Field delimiter, comma by default.
    subgroups : list of str, optional
        Subgroup count columns to require. Defaults to Hispanic and white.
    id_column : str, optional
        Tract identifier column, read as text so leading zeros survive.

    Returns
    -------
    pandas.DataFrame
        One row per tract in file order.

    Raises
    ------
    MissingColumnError
        If a required column is absent.
    SchemaMismatchError
        If a count or income column is not numeric, a count or income is
        negative, or a subgroup exceeds the tract total.
    """
    path = Path(path)
    logger.info("Loading tracts from %s", path)
    raw = pd.read_csv(path, sep=sep, dtype={id_column: str})
    table = validate_tract_table(raw, subgroups=subgroups, id_column=id_column)
    logger.info("Loaded %d tracts with columns %s", len(table), list(table.columns))
    return table


def validate_tract_table(
    table: pd.DataFrame,
    subgroups: Optional[List[str]] = None,
    total_column: str = TOTAL_COLUMN,
    income_column: str = INCOME_COLUMN,
    id_column: str = ID_COLUMN
) -> pd.DataFrame:
    """Check required columns and count invariants; returns a typed copy"""
    subgroups = list(subgroups or SUBGROUP_COLUMNS)
    required = [id_column, total_column, *subgroups, income_column]

    missing = [column for column in required if column not in table.columns]
    if missing:
        raise MissingColumnError(
            f"Tract table is missing column(s): {', '.join(missing)}",
            context={'missing': missing, 'available': list(table.columns)}
        )

    typed = table.copy()
    for column in [total_column, *subgroups]:
        typed[column] = _as_count(typed[column], column)
    typed[income_column] = _as_numeric(typed[income_column], income_column).astype("Float64")

    negative_income = (typed[income_column] < 0).fillna(False)
    if negative_income.any():
        raise SchemaMismatchError(
            f"Column '{income_column}' has negative values",
            context={
                'column': income_column,
                'rows': typed.loc[negative_income, id_column].astype(str).tolist()
            }
        )

    for subgroup in subgroups:
        over = (typed[subgroup] > typed[total_column]).fillna(False)
        if over.any():
            raise SchemaMismatchError(
                f"Column '{subgroup}' exceeds '{total_column}' in {int(over.sum())} row(s)",
                context={
                    'column': subgroup,
                    'rows': typed.loc[over, id_column].astype(str).tolist()
                }
            )

    return typed


def _as_numeric(values: pd.Series, column: str) -> pd.Series:
    if pd.api.types.is_numeric_dtype(values):
        return values

    coerced = pd.to_numeric(values, errors="coerce")
    if len(values) and coerced.notna().sum() == 0:
        raise SchemaMismatchError(
            f"Column '{column}' has no numeric values",
            context={'column': column, 'dtype': str(values.dtype)}
        )

    unparsed = int((coerced.isna() & values.notna()).sum())
    if unparsed:
        logger.warning("Column %s: %d non-numeric cell(s) treated as missing", column, unparsed)
    return coerced


def _as_count(values: pd.Series, column: str) -> pd.Series:
    numeric = _as_numeric(values, column).astype("Float64")
    present = numeric.dropna()

    if (present < 0).any():
        raise SchemaMismatchError(
            f"Column '{column}' has negative counts",
            context={'column': column, 'rows': int((present < 0).sum())}
        )
    if (present % 1 != 0).any():
        raise SchemaMismatchError(
            f"Column '{column}' has non-integer counts",
            context={'column': column}
        )

    return numeric.astype("Int64")
