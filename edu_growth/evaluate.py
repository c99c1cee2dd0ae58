"""
Held-out evaluation of fitted models.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from sklearn.metrics import mean_squared_error, r2_score

from .config import TARGET
from .dataset import DatasetSplit
from .exceptions import SplitMismatchError

logger = logging.getLogger(__name__)

ACTUAL_COLUMN = "actual_gdp_growth"
PREDICTED_COLUMN = "predicted_gdp_growth"


def regression_metrics(actual, predicted) -> Dict[str, float]:
    """RMSE and R^2 (1 - SS_res / SS_tot) of `predicted` against `actual`."""
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    if actual.shape != predicted.shape or actual.size == 0:
        raise ValueError(
            f"Need equally sized, non-empty arrays (got {actual.shape} and {predicted.shape})"
        )
    rmse = float(np.sqrt(mean_squared_error(actual, predicted)))
    r2 = float(r2_score(actual, predicted))
    return {"RMSE": rmse, "R_squared": r2}


def predict(model: Any, frame: pd.DataFrame) -> np.ndarray:
    """Predict GDP growth for every row of `frame` with a fitted model."""
    return np.asarray(model.predict(frame), dtype=float)


def evaluate_model(
    model: Any, test: pd.DataFrame
) -> Tuple[pd.DataFrame, Dict[str, float]]:
    """
    Predict on the test partition and score the predictions.

    Returns the (actual, predicted) pairs, indexed like `test`, and the
    metrics dictionary.
    """
    predicted = predict(model, test)
    predictions = pd.DataFrame(
        {ACTUAL_COLUMN: test[TARGET].to_numpy(dtype=float), PREDICTED_COLUMN: predicted},
        index=test.index,
    )
    metrics = regression_metrics(predictions[ACTUAL_COLUMN], predictions[PREDICTED_COLUMN])
    logger.info(
        "%s on %d test rows: RMSE=%.3f R2=%.3f",
        getattr(model, "name", type(model).__name__),
        len(test),
        metrics["RMSE"],
        metrics["R_squared"],
    )
    return predictions, metrics


def verify_split(split: DatasetSplit, recorded: Mapping[str, Any]) -> None:
    """
    Check a re-derived split against the one recorded at training time.

    `recorded` is the ``split`` block of the training metadata.
    """
    mismatches = []
    for key in ("seed", "train_fraction", "n_strata", "n_train", "n_test", "signature"):
        current = split.to_metadata()[key]
        if recorded.get(key) != current:
            mismatches.append(f"{key}: trained with {recorded.get(key)!r}, now {current!r}")
    if mismatches:
        raise SplitMismatchError(
            "Test partition differs from the one used in training ("
            + "; ".join(mismatches)
            + "). Re-run the model stage on the current cleaned data."
        )


def compare_models(
    models: Mapping[str, Any], test: pd.DataFrame
) -> pd.DataFrame:
    """Test-set RMSE and R^2 for every fitted model."""
    rows = []
    for stage, model in models.items():
        _, metrics = evaluate_model(model, test)
        rows.append({"model": stage, **metrics, "n_test": len(test)})
    return pd.DataFrame(rows, columns=["model", "RMSE", "R_squared", "n_test"])


def plot_predicted_vs_actual(predictions: pd.DataFrame):
    """Scatter of predicted vs. actual GDP growth with the 45-degree line."""
    fig, ax = plt.subplots(figsize=(8, 6))
    sns.scatterplot(
        data=predictions, x=ACTUAL_COLUMN, y=PREDICTED_COLUMN, alpha=0.5, ax=ax
    )
    lo = float(np.nanmin(predictions[[ACTUAL_COLUMN, PREDICTED_COLUMN]].to_numpy()))
    hi = float(np.nanmax(predictions[[ACTUAL_COLUMN, PREDICTED_COLUMN]].to_numpy()))
    ax.plot([lo, hi], [lo, hi], color="red", linestyle="--")
    ax.set_title("Predicted vs Actual GDP Growth")
    ax.set_xlabel("Actual GDP Growth")
    ax.set_ylabel("Predicted GDP Growth")
    return fig
