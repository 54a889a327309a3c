"""Shared fixtures: small tract tables with known composition and income."""

import sys
from pathlib import Path

import pandas as pd
import pytest

# Ensure project root is on sys.path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def tracts() -> pd.DataFrame:
    """Eight tracts of 1000 people: four majority Hispanic, four majority white"""
    return pd.DataFrame({
        'id': [f"t{i}" for i in range(1, 9)],
        'total': [1000] * 8,
        'hispanic': [800, 700, 650, 600, 300, 200, 100, 50],
        'white': [100, 200, 250, 300, 600, 700, 850, 900],
        'median_household_income': [40000, 42000, 45000, 39000, 70000, 75000, 80000, 72000],
    })


@pytest.fixture
def tracts_csv(tmp_path: Path, tracts: pd.DataFrame) -> Path:
    path = tmp_path / "tracts.csv"
    tracts.to_csv(path, index=False)
    return path
