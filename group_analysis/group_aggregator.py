import logging
import pandas as pd
from typing import Dict, List, Optional
from dataclasses import dataclass, field

from analysis_errors import MissingColumnError, SchemaMismatchError

logger = logging.getLogger(__name__)

SUPPORTED_AGGREGATIONS = ('mean', 'median', 'sum', 'min', 'max')


@dataclass
class GroupSummary:
    label: str
    mean: Optional[float]
    count: int
    usable_count: int
    aggregate: Optional[float]


@dataclass
class GroupAggregateResult:
    group_column: str
    value_column: str
    aggregation: str
    groups: Dict[str, GroupSummary] = field(default_factory=dict)

    def __getitem__(self, label: str) -> GroupSummary:
        return self.groups[label]

    def __len__(self) -> int:
        return len(self.groups)

    def labels(self) -> List[str]:
        return list(self.groups)

    def to_frame(self) -> pd.DataFrame:
        """One row per group, in the order the groups were first seen"""
        return pd.DataFrame(
            [
                {
                    self.group_column: summary.label,
                    'mean': summary.mean,
                    self.aggregation: summary.aggregate,
                    'count': summary.count,
                }
                for summary in self.groups.values()
            ],
            columns=list(dict.fromkeys([self.group_column, 'mean', self.aggregation, 'count']))
        )


def aggregate_by_group(
    table: pd.DataFrame,
    group_column: str,
    value_column: str,
    aggregation: str = 'mean'
) -> GroupAggregateResult:
    """
    Summarize a numeric column per distinct value of a categorical column.

    Groups appear in first-seen order and labels are compared exactly. The
    count includes rows whose value is missing; the mean and the chosen
    aggregate skip them and are None for a group with no usable value.
    Rows with a missing group label belong to no group.
    """
    if aggregation not in SUPPORTED_AGGREGATIONS:
        raise ValueError(f"Unknown aggregation: {aggregation}")

    missing = [name for name in (group_column, value_column) if name not in table.columns]
    if missing:
        raise MissingColumnError(
            f"Missing column(s): {', '.join(missing)}",
            context={'missing': missing, 'available': list(table.columns)}
        )

    if not pd.api.types.is_numeric_dtype(table[value_column]):
        raise SchemaMismatchError(
            f"Column '{value_column}' must be numeric",
            context={'column': value_column, 'dtype': str(table[value_column].dtype)}
        )

    labels = table[group_column]
    labelled = labels.notna()
    if not labelled.all():
        logger.warning(
            "%d row(s) without a %s label left out of grouping",
            int((~labelled).sum()), group_column
        )

    values = table.loc[labelled, value_column].astype("Float64")
    grouped = values.groupby(labels[labelled], sort=False, observed=True)

    counts = grouped.size()
    usable = grouped.count()
    means = grouped.mean()
    if aggregation == 'mean':
        aggregates = means
    elif aggregation == 'sum':
        aggregates = grouped.sum(min_count=1)
    else:
        aggregates = grouped.agg(aggregation)

    result = GroupAggregateResult(
        group_column=group_column,
        value_column=value_column,
        aggregation=aggregation
    )
    for label in counts.index:
        result.groups[label] = GroupSummary(
            label=label,
            mean=_defined(means[label]),
            count=int(counts[label]),
            usable_count=int(usable[label]),
            aggregate=_defined(aggregates[label])
        )

    logger.debug(
        "aggregate_by_group: %s over %s -> %s",
        aggregation, group_column, {k: v.count for k, v in result.groups.items()}
    )
    return result


def _defined(value) -> Optional[float]:
    return None if pd.isna(value) else float(value)
