"""Tests for the OLS and random forest fitters."""

import numpy as np
import pandas as pd
import pytest

from edu_growth.data import trim_growth
from edu_growth.dataset import build_model_ready, stratified_split
from edu_growth.evaluate import regression_metrics
from edu_growth.exceptions import ModelFittingError
from edu_growth.models import (
    ForestModelFit,
    LinearModelFit,
    build_regression_table,
    check_fittable,
    fit_baseline,
    fit_extended,
    fit_random_forest,
    format_coefficient,
    max_features_grid,
    significance_stars,
)


@pytest.fixture
def split(cleaned):
    return stratified_split(build_model_ready(trim_growth(cleaned)), seed=42)


@pytest.fixture
def perfect_line():
    return pd.DataFrame(
        {"education_spending": [2.0, 4.0, 6.0, 8.0], "gdp_growth": [1.0, 2.0, 3.0, 4.0]}
    )


class TestSignificanceStars:

    @pytest.mark.parametrize(
        "p, stars",
        [
            (0.0001, "***"),
            (0.001, "**"),
            (0.005, "**"),
            (0.01, "*"),
            (0.049, "*"),
            (0.05, ""),
            (0.5, ""),
            (float("nan"), ""),
        ],
    )
    def test_thresholds(self, p, stars):
        assert significance_stars(p) == stars


class TestLinearModels:

    def test_perfect_line(self, perfect_line):
        fit = fit_baseline(perfect_line)
        assert fit.params["education_spending"] == pytest.approx(0.5)
        assert fit.params["Intercept"] == pytest.approx(0.0, abs=1e-9)
        assert fit.rsquared == pytest.approx(1.0)

        metrics = regression_metrics(perfect_line["gdp_growth"], fit.predict(perfect_line))
        assert metrics["R_squared"] == pytest.approx(1.0)
        assert metrics["RMSE"] == pytest.approx(0.0, abs=1e-9)

    def test_baseline_on_training_partition(self, split):
        fit = fit_baseline(split.train)
        assert isinstance(fit, LinearModelFit)
        assert fit.nobs == len(split.train)
        assert fit.features == ("education_spending",)
        assert set(fit.params) == {"Intercept", "education_spending"}

    def test_extended_exposes_inference(self, split):
        fit = fit_extended(split.train)
        coefs = fit.coefficients()
        assert list(coefs["term"]) == [
            "Intercept",
            "education_spending",
            "unemployment",
            "inflation",
            "population_growth",
        ]
        assert (coefs["std_error"] > 0).all()
        assert coefs["p_value"].between(0, 1).all()
        assert list(coefs["stars"]) == [significance_stars(p) for p in coefs["p_value"]]

    def test_deterministic(self, split):
        assert fit_extended(split.train).params == fit_extended(split.train).params

    def test_predict_matches_params(self, split):
        fit = fit_extended(split.train)
        row = split.test.iloc[[0]]
        expected = fit.params["Intercept"] + sum(
            fit.params[f] * row[f].iloc[0] for f in fit.features
        )
        assert fit.predict(row)[0] == pytest.approx(expected)

    def test_too_few_rows(self, split):
        with pytest.raises(ModelFittingError) as excinfo:
            fit_extended(split.train.iloc[:4])
        assert excinfo.value.stage == "extended"

    def test_zero_variance_feature(self, split):
        train = split.train.assign(inflation=3.0)
        with pytest.raises(ModelFittingError, match="inflation"):
            fit_extended(train)

    def test_baseline_ignores_other_columns(self, split):
        train = split.train.assign(inflation=3.0)
        fit_baseline(train)


class TestCheckFittable:

    def test_missing_values(self, perfect_line):
        df = perfect_line.copy()
        df.loc[0, "gdp_growth"] = np.nan
        with pytest.raises(ModelFittingError, match="missing"):
            check_fittable(df, ["education_spending"], "baseline")

    def test_exactly_enough_rows(self, perfect_line):
        check_fittable(perfect_line.iloc[:2], ["education_spending"], "baseline")

    def test_error_payload(self, perfect_line):
        with pytest.raises(ModelFittingError) as excinfo:
            check_fittable(perfect_line.iloc[:1], ["education_spending"], "baseline")
        assert excinfo.value.to_dict()["stage"] == "baseline"


class TestRandomForest:

    def test_fit(self, split):
        fit = fit_random_forest(split.train, n_estimators=20, n_jobs=1)
        assert isinstance(fit, ForestModelFit)
        assert fit.best_params["max_features"] in (2, 3, 4)
        assert [r["max_features"] for r in fit.cv_results] == [2, 3, 4]
        assert all(r["mean_rmse"] > 0 for r in fit.cv_results)
        assert fit.predict(split.test).shape == (len(split.test),)

    def test_deterministic_across_jobs(self, split):
        serial = fit_random_forest(split.train, seed=1, n_estimators=20, n_jobs=1)
        parallel = fit_random_forest(split.train, seed=1, n_estimators=20, n_jobs=2)
        np.testing.assert_array_equal(serial.predict(split.test), parallel.predict(split.test))
        assert serial.best_params == parallel.best_params
        assert serial.cv_results == parallel.cv_results

    def test_repeated_parallel_fits_identical(self, split):
        first = fit_random_forest(split.train, seed=1, n_estimators=20, n_jobs=-1)
        second = fit_random_forest(split.train, seed=1, n_estimators=20, n_jobs=-1)
        np.testing.assert_array_equal(first.predict(split.test), second.predict(split.test))
        assert first.cv_results == second.cv_results
        assert first.estimator.n_jobs == 1

    def test_feature_importances(self, split):
        fit = fit_random_forest(split.train, n_estimators=20, n_jobs=1)
        imp = fit.feature_importances()
        assert set(imp["feature"]) == set(fit.features)
        assert imp["importance"].sum() == pytest.approx(1.0)

    def test_too_few_rows_for_cv(self, split):
        with pytest.raises(ModelFittingError) as excinfo:
            fit_random_forest(split.train.iloc[:4], n_estimators=5, cv_folds=5)
        assert excinfo.value.stage == "random_forest"

    def test_grid_clipped_to_features(self):
        assert max_features_grid(4) == [2, 3, 4]
        assert max_features_grid(1) == [1]
        assert max_features_grid(3, grid=(1, 2, 5)) == [1, 2, 3]


class TestRegressionTable:

    def test_format_coefficient(self):
        assert format_coefficient(1.5, 0.25, "**") == "1.500 (0.250) **"
        assert format_coefficient(-0.1234, 0.0451, "") == "-0.123 (0.045)"
        assert format_coefficient(float("nan"), 0.1, "") == ""

    def test_table_layout(self, split):
        table = build_regression_table(
            {"Model_1": fit_baseline(split.train), "Model_2": fit_extended(split.train)}
        )
        assert list(table.columns) == ["term", "Model_1", "Model_2"]
        assert list(table["term"]) == [
            "Intercept",
            "Education spending (% of GDP)",
            "Unemployment rate (%)",
            "Inflation rate (%)",
            "Population growth (%)",
        ]
        assert (table.loc[2:, "Model_1"] == "").all()
        assert (table["Model_2"] != "").all()
        assert table.loc[1, "Model_1"].count("(") == 1
