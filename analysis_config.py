"""Configuration constants and logging setup for the tract analysis."""

import logging
from dataclasses import dataclass, field
from typing import List


# Input data
ID_COLUMN: str = "id"
TOTAL_COLUMN: str = "total"
INCOME_COLUMN: str = "median_household_income"
SUBGROUP_COLUMNS: List[str] = ["hispanic", "white"]

# Derivation defaults
MAJORITY_THRESHOLD: float = 50.0
PERCENT_DECIMALS: int = 2

# Inference defaults
CONFIDENCE_LEVEL: float = 0.95
SIGNIFICANCE_LEVEL: float = 0.05

# Logging
LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class AnalysisConfig:
    subgroups: List[str] = field(default_factory=lambda: list(SUBGROUP_COLUMNS))
    total_column: str = TOTAL_COLUMN
    income_column: str = INCOME_COLUMN
    id_column: str = ID_COLUMN
    threshold: float = MAJORITY_THRESHOLD
    confidence_level: float = CONFIDENCE_LEVEL
    significance_level: float = SIGNIFICANCE_LEVEL


def configure_logging(level: int = logging.INFO) -> None:
    """Install a root handler using the project log format"""
    logging.basicConfig(level=level, format=LOG_FORMAT)
