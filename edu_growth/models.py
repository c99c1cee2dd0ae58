"""
Model construction utilities for the education spending vs GDP growth
pipeline.

Two OLS specifications (statsmodels, for coefficient inference) and a
random forest (scikit-learn, tuned by k-fold cross-validation). Every
fitter sees the training partition only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
from sklearn.ensemble import RandomForestRegressor
from sklearn.model_selection import GridSearchCV, KFold

from .config import (
    BASELINE_FEATURES,
    CV_FOLDS,
    EXTENDED_FEATURES,
    MAX_FEATURES_GRID,
    N_ESTIMATORS,
    SEED,
    SIGNIFICANCE_LEVELS,
    TARGET,
    TERM_LABELS,
)
from .exceptions import ModelFittingError

logger = logging.getLogger(__name__)

INTERCEPT = "Intercept"


def significance_stars(p_value: float) -> str:
    """Map a p-value to ``***`` (<0.001), ``**`` (<0.01), ``*`` (<0.05) or ``""``."""
    if p_value is None or np.isnan(p_value):
        return ""
    for threshold, stars in SIGNIFICANCE_LEVELS:
        if p_value < threshold:
            return stars
    return ""


@dataclass(frozen=True)
class LinearModelFit:
    """Coefficients and inference of an OLS fit of GDP growth."""

    name: str
    features: Tuple[str, ...]
    params: Dict[str, float]
    bse: Dict[str, float]
    pvalues: Dict[str, float]
    rsquared: float
    rsquared_adj: float
    nobs: int

    def predict(self, frame: pd.DataFrame) -> np.ndarray:
        X = frame[list(self.features)].to_numpy(dtype=float)
        coefs = np.array([self.params[f] for f in self.features], dtype=float)
        return self.params[INTERCEPT] + X @ coefs

    def coefficients(self) -> pd.DataFrame:
        """One row per term: estimate, standard error, p-value and stars."""
        terms = [INTERCEPT] + list(self.features)
        return pd.DataFrame(
            {
                "term": terms,
                "estimate": [self.params[t] for t in terms],
                "std_error": [self.bse[t] for t in terms],
                "p_value": [self.pvalues[t] for t in terms],
                "stars": [significance_stars(self.pvalues[t]) for t in terms],
            }
        )


@dataclass(frozen=True)
class ForestModelFit:
    """A random forest refit on the full training partition after CV tuning."""

    name: str
    estimator: RandomForestRegressor
    features: Tuple[str, ...]
    best_params: Dict[str, Any]
    cv_results: List[Dict[str, float]] = field(default_factory=list)

    def predict(self, frame: pd.DataFrame) -> np.ndarray:
        return self.estimator.predict(frame[list(self.features)])

    def feature_importances(self) -> pd.DataFrame:
        df_imp = pd.DataFrame(
            {"feature": list(self.features), "importance": self.estimator.feature_importances_}
        )
        return df_imp.sort_values("importance", ascending=False).reset_index(drop=True)


def check_fittable(train: pd.DataFrame, features: Sequence[str], stage: str) -> None:
    """
    Raise ModelFittingError if `train` cannot support a fit on `features`.

    Needs at least len(features) + 1 rows, no missing values and no
    constant feature column.
    """
    columns = list(features) + [TARGET]
    missing = [c for c in columns if c not in train.columns]
    if missing:
        raise ModelFittingError(stage, f"training data lacks columns {missing}")
    n_rows = len(train)
    if n_rows < len(features) + 1:
        raise ModelFittingError(
            stage,
            f"{n_rows} training rows for {len(features)} features "
            f"(need at least {len(features) + 1})",
        )
    if train[columns].isna().any().any():
        raise ModelFittingError(stage, "training data contains missing values")
    constant = [f for f in features if train[f].nunique() < 2]
    if constant:
        raise ModelFittingError(stage, f"zero-variance features: {', '.join(constant)}")


def fit_linear_model(
    train: pd.DataFrame, features: Sequence[str], name: str
) -> LinearModelFit:
    """Fit gdp_growth ~ features by OLS with an intercept."""
    check_fittable(train, features, name)
    X = sm.add_constant(train[list(features)].astype(float), has_constant="add")
    X = X.rename(columns={"const": INTERCEPT})
    y = train[TARGET].astype(float)

    res = sm.OLS(y, X).fit()
    logger.info("Fitted %s OLS on %d rows (R2=%.3f)", name, int(res.nobs), res.rsquared)

    def as_floats(series: pd.Series) -> Dict[str, float]:
        return {str(k): float(v) for k, v in series.items()}

    return LinearModelFit(
        name=name,
        features=tuple(features),
        params=as_floats(res.params),
        bse=as_floats(res.bse),
        pvalues=as_floats(res.pvalues),
        rsquared=float(res.rsquared),
        rsquared_adj=float(res.rsquared_adj),
        nobs=int(res.nobs),
    )


def fit_baseline(train: pd.DataFrame) -> LinearModelFit:
    """GDP growth explained only by education spending."""
    return fit_linear_model(train, BASELINE_FEATURES, name="baseline")


def fit_extended(train: pd.DataFrame) -> LinearModelFit:
    """Baseline plus unemployment, inflation and population growth controls."""
    return fit_linear_model(train, EXTENDED_FEATURES, name="extended")


def max_features_grid(n_features: int, grid: Sequence[int] = MAX_FEATURES_GRID) -> List[int]:
    """Candidate per-split feature counts, clipped to the available features."""
    return sorted({min(int(g), n_features) for g in grid if int(g) >= 1})


def fit_random_forest(
    train: pd.DataFrame,
    features: Sequence[str] = EXTENDED_FEATURES,
    seed: int = SEED,
    cv_folds: int = CV_FOLDS,
    grid: Sequence[int] = MAX_FEATURES_GRID,
    n_estimators: int = N_ESTIMATORS,
    n_jobs: int = -1,
) -> ForestModelFit:
    """
    Random forest for gdp_growth, `max_features` chosen by k-fold CV on RMSE.

    Folds are shuffled with `seed` and the forest uses `seed` as its
    random_state. Parallelism (`n_jobs`) is spread over the CV fits only;
    each forest builds and predicts in a single job, so its summed tree
    outputs come out bit-identical for any `n_jobs`.
    """
    stage = "random_forest"
    check_fittable(train, features, stage)
    if len(train) < cv_folds:
        raise ModelFittingError(
            stage, f"{len(train)} training rows for {cv_folds}-fold cross-validation"
        )

    param_grid = {"max_features": max_features_grid(len(features), grid)}
    search = GridSearchCV(
        RandomForestRegressor(n_estimators=n_estimators, random_state=seed, n_jobs=1),
        param_grid=param_grid,
        scoring="neg_root_mean_squared_error",
        cv=KFold(n_splits=cv_folds, shuffle=True, random_state=seed),
        refit=True,
        n_jobs=n_jobs,
    )
    search.fit(train[list(features)].astype(float), train[TARGET].astype(float))

    cv_results = [
        {
            "max_features": int(params["max_features"]),
            "mean_rmse": float(-mean),
            "std_rmse": float(std),
        }
        for params, mean, std in zip(
            search.cv_results_["params"],
            search.cv_results_["mean_test_score"],
            search.cv_results_["std_test_score"],
        )
    ]
    best_params = {k: int(v) for k, v in search.best_params_.items()}
    logger.info(
        "Fitted random forest on %d rows: best %s (CV RMSE %.3f)",
        len(train),
        best_params,
        -search.best_score_,
    )
    return ForestModelFit(
        name=stage,
        estimator=search.best_estimator_,
        features=tuple(features),
        best_params=best_params,
        cv_results=cv_results,
    )


def format_coefficient(estimate: float, std_error: float, stars: str) -> str:
    """Format as ``"estimate (se) stars"`` with 3 decimals."""
    if estimate is None or np.isnan(estimate):
        return ""
    return f"{estimate:.3f} ({std_error:.3f}) {stars}".rstrip()


def build_regression_table(fits: Mapping[str, LinearModelFit]) -> pd.DataFrame:
    """
    Side-by-side regression table.

    One row per term (in order of first appearance across models, labelled
    for presentation), one column per model holding the formatted
    coefficient; terms a model does not include are left blank.
    """
    terms: List[str] = []
    for fit in fits.values():
        for term in fit.params:
            if term not in terms:
                terms.append(term)

    rows = []
    for term in terms:
        row = {"term": TERM_LABELS.get(term, term)}
        for column, fit in fits.items():
            if term in fit.params:
                row[column] = format_coefficient(
                    fit.params[term], fit.bse[term], significance_stars(fit.pvalues[term])
                )
            else:
                row[column] = ""
        rows.append(row)
    return pd.DataFrame(rows, columns=["term"] + list(fits))
