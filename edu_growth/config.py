"""
Static configuration for the education spending vs GDP growth pipeline.

Indicator codes, column names, trimming bounds, split/model settings and
the on-disk layout of every stage's artifacts live here, so the rest of the
package never relies on implicit column-name conventions.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple


# Project root is the parent of this `edu_growth` package directory
ROOT_DIR = Path(__file__).resolve().parent.parent

# World Bank series code -> canonical field name (order is the output order)
INDICATORS: Dict[str, str] = {
    "SE.XPD.TOTL.GD.ZS": "education_spending",  # Government expenditure on education (% of GDP)
    "NY.GDP.MKTP.KD.ZG": "gdp_growth",  # GDP growth (annual %)
    "SL.UEM.TOTL.ZS": "unemployment",  # Unemployment, total (% of labor force)
    "FP.CPI.TOTL.ZG": "inflation",  # Inflation, consumer prices (annual %)
    "SP.POP.GROW": "population_growth",  # Population growth (annual %)
}
INDICATOR_FIELDS: List[str] = list(INDICATORS.values())

ID_COLUMNS: List[str] = ["country_name", "country_code", "year"]
CLEANED_COLUMNS: List[str] = ID_COLUMNS + INDICATOR_FIELDS
CORE_FIELDS: List[str] = ["education_spending", "gdp_growth"]

TARGET = "gdp_growth"
BASELINE_FEATURES: List[str] = ["education_spending"]
EXTENDED_FEATURES: List[str] = [
    "education_spending",
    "unemployment",
    "inflation",
    "population_growth",
]

TERM_LABELS: Dict[str, str] = {
    "Intercept": "Intercept",
    "education_spending": "Education spending (% of GDP)",
    "unemployment": "Unemployment rate (%)",
    "inflation": "Inflation rate (%)",
    "population_growth": "Population growth (%)",
}

# Inclusive bounds on GDP growth used to trim crisis/rebound years
GROWTH_BOUNDS: Tuple[float, float] = (-20.0, 20.0)

SEED = 42
TRAIN_FRACTION = 0.7
N_STRATA = 4
CV_FOLDS = 5
N_ESTIMATORS = 500
MAX_FEATURES_GRID: Tuple[int, ...] = (2, 3, 4)

SIGNIFICANCE_LEVELS: Tuple[Tuple[float, str], ...] = (
    (0.001, "***"),
    (0.01, "**"),
    (0.05, "*"),
)

FOCUS_COUNTRY = "Jordan"

MODEL_NAMES: Dict[str, str] = {
    "baseline": "Model_1",
    "extended": "Model_2",
}


@dataclass(frozen=True)
class PipelinePaths:
    """Locations of every stage input and output, relative to a project root."""

    root: Path = ROOT_DIR

    @property
    def raw_data(self) -> Path:
        return self.root / "data" / "raw" / "wdi_education_growth_2000_2024.csv"

    @property
    def cleaned_data(self) -> Path:
        return self.root / "data" / "cleaned" / "wdi_cleaned.csv"

    @property
    def eda_dir(self) -> Path:
        return self.root / "outputs" / "eda_figures"

    @property
    def models_dir(self) -> Path:
        return self.root / "outputs" / "models"

    @property
    def plots_dir(self) -> Path:
        return self.root / "outputs" / "plots"

    @property
    def eda_summary(self) -> Path:
        return self.eda_dir / "eda_summary.json"

    @property
    def regression_table(self) -> Path:
        return self.models_dir / "table_3_regression_results.csv"

    def model_artifact(self, stage: str) -> Path:
        """Path of the persisted model for `baseline`, `extended` or `random_forest`."""
        if stage == "random_forest":
            return self.models_dir / "random_forest_model.joblib"
        return self.models_dir / f"{stage}_linear_model.joblib"

    @property
    def training_metadata(self) -> Path:
        return self.models_dir / "training_metadata.json"

    @property
    def fit_failures(self) -> Path:
        return self.models_dir / "fit_failures.json"

    @property
    def metrics(self) -> Path:
        return self.models_dir / "ml_evaluation_metrics.csv"

    @property
    def comparison_metrics(self) -> Path:
        return self.models_dir / "model_comparison_metrics.csv"

    @property
    def predictions(self) -> Path:
        return self.models_dir / "ml_predictions.csv"

    @property
    def evaluation_plot(self) -> Path:
        return self.plots_dir / "predicted_vs_actual_gdp_growth.png"


def get_paths(root: Path | str | None = None) -> PipelinePaths:
    """Return the artifact layout rooted at `root` (default: the project root)."""
    if root is None:
        return PipelinePaths()
    return PipelinePaths(root=Path(root))
