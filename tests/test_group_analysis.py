"""Tests for grouped aggregation and the two-group comparison."""

import numpy as np
import pandas as pd
import pytest
from scipy import stats

from analysis_errors import InvalidGroupCountError, MissingColumnError, SchemaMismatchError
from data_preparation.column_deriver import derive_percentage_columns
from group_analysis.group_aggregator import aggregate_by_group
from group_analysis.group_comparison import two_sample_test


@pytest.fixture
def labelled() -> pd.DataFrame:
    return pd.DataFrame({
        'status': ['b', 'a', 'b', 'a', 'b', None, 'c'],
        'income': pd.array([10.0, 20.0, None, 40.0, 30.0, 99.0, None], dtype="Float64"),
    })


class TestAggregateByGroup:

    def test_first_seen_order(self, labelled):
        result = aggregate_by_group(labelled, 'status', 'income')
        assert result.labels() == ['b', 'a', 'c']

    def test_count_includes_missing_values_mean_excludes_them(self, labelled):
        result = aggregate_by_group(labelled, 'status', 'income')

        assert result['b'].count == 3
        assert result['b'].usable_count == 2
        assert result['b'].mean == pytest.approx(20.0)
        assert result['a'].mean == pytest.approx(30.0)

    def test_group_without_usable_values_has_undefined_mean(self, labelled):
        result = aggregate_by_group(labelled, 'status', 'income')

        assert result['c'].count == 1
        assert result['c'].mean is None
        assert result['c'].aggregate is None

    def test_rows_without_label_excluded(self, labelled):
        result = aggregate_by_group(labelled, 'status', 'income')
        assert sum(group.count for group in result.groups.values()) == 6

    def test_labels_are_case_sensitive(self):
        table = pd.DataFrame({'status': ['Yes', 'yes', 'Yes'], 'income': [1.0, 2.0, 3.0]})
        result = aggregate_by_group(table, 'status', 'income')

        assert result.labels() == ['Yes', 'yes']
        assert result['Yes'].mean == pytest.approx(2.0)

    def test_other_aggregation(self, labelled):
        result = aggregate_by_group(labelled, 'status', 'income', aggregation='max')

        assert result.aggregation == 'max'
        assert result['b'].aggregate == pytest.approx(30.0)
        assert result['b'].mean == pytest.approx(20.0)

    def test_to_frame(self, labelled):
        frame = aggregate_by_group(labelled, 'status', 'income').to_frame()

        assert list(frame.columns) == ['status', 'mean', 'count']
        assert frame['count'].tolist() == [3, 2, 1]

    def test_scenario_two_groups_one_row_each(self):
        table = pd.DataFrame({
            'total': [100, 100],
            'hispanic': [80, 10],
            'median_household_income': [41000.0, 67000.0],
        })
        derived = derive_percentage_columns(table, 'hispanic')
        result = aggregate_by_group(derived, 'hispanic_status', 'median_household_income')

        assert len(result) == 2
        assert result['majority_hispanic'].count == 1
        assert result['not_majority_hispanic'].count == 1
        assert result['majority_hispanic'].mean == pytest.approx(41000.0)

    def test_unknown_aggregation(self, labelled):
        with pytest.raises(ValueError):
            aggregate_by_group(labelled, 'status', 'income', aggregation='mode')

    def test_missing_column(self, labelled):
        with pytest.raises(MissingColumnError):
            aggregate_by_group(labelled, 'tenure', 'income')

    def test_non_numeric_values(self, labelled):
        with pytest.raises(SchemaMismatchError):
            aggregate_by_group(labelled, 'income', 'status')


class TestTwoSampleTest:

    def test_matches_scipy(self, tracts):
        derived = derive_percentage_columns(tracts, 'hispanic')
        result = two_sample_test(derived, 'hispanic_status', 'median_household_income')

        incomes = tracts['median_household_income']
        majority, rest = incomes[:4].tolist(), incomes[4:].tolist()
        expected = stats.ttest_ind(majority, rest, equal_var=False)

        assert result.group_a == 'majority_hispanic'
        assert result.group_b == 'not_majority_hispanic'
        assert result.difference == pytest.approx(np.mean(majority) - np.mean(rest))
        assert result.p_value == pytest.approx(expected.pvalue)
        assert result.significant

    def test_explicit_group_order(self, tracts):
        derived = derive_percentage_columns(tracts, 'hispanic')
        forward = two_sample_test(derived, 'hispanic_status', 'median_household_income')
        backward = two_sample_test(
            derived, 'hispanic_status', 'median_household_income',
            groups=('not_majority_hispanic', 'majority_hispanic')
        )

        assert backward.difference == pytest.approx(-forward.difference)
        assert backward.p_value == pytest.approx(forward.p_value)

    def test_three_groups_rejected(self):
        table = pd.DataFrame({'g': ['x', 'y', 'z', 'x'], 'v': [1.0, 2.0, 3.0, 4.0]})

        with pytest.raises(InvalidGroupCountError) as excinfo:
            two_sample_test(table, 'g', 'v')
        assert excinfo.value.context['groups'] == ['x', 'y', 'z']

    def test_single_group_rejected(self):
        table = pd.DataFrame({'g': ['x', 'x', None], 'v': [1.0, 2.0, 3.0]})

        with pytest.raises(InvalidGroupCountError):
            two_sample_test(table, 'g', 'v')

    def test_requested_groups_must_match(self):
        table = pd.DataFrame({'g': ['x', 'y', 'x', 'y'], 'v': [1.0, 2.0, 3.0, 4.0]})

        with pytest.raises(InvalidGroupCountError):
            two_sample_test(table, 'g', 'v', groups=('x', 'w'))

    def test_missing_labels_ignored(self):
        table = pd.DataFrame({
            'g': ['x', 'y', None, 'x', 'y'],
            'v': [1.0, 5.0, 100.0, 2.0, 7.0],
        })
        result = two_sample_test(table, 'g', 'v')

        assert result.count_a == 2
        assert result.count_b == 2
        assert result.difference == pytest.approx(1.5 - 6.0)

    def test_missing_column(self, tracts):
        with pytest.raises(MissingColumnError):
            two_sample_test(tracts, 'hispanic_status', 'median_household_income')
