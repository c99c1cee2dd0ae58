"""
Streamlit dashboard for the education spending vs GDP growth pipeline.

Features:
- Load the cleaned data and the artifacts written by the model and
  evaluate stages
- Show:
  * The side-by-side OLS regression table
  * Held-out RMSE / R² for every fitted model
  * Predicted vs. actual GDP growth on the test partition
  * Feature importance of the random forest
- Let users adjust the four indicators and get a random forest prediction

Run locally (after `python run_pipeline.py`) with:
    streamlit run app.py
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

import numpy as np
import pandas as pd
import streamlit as st
import matplotlib.pyplot as plt
import seaborn as sns

from edu_growth.config import CV_FOLDS, EXTENDED_FEATURES, TERM_LABELS, get_paths
from edu_growth.data import load_trimmed_view
from edu_growth.evaluate import plot_predicted_vs_actual
from edu_growth.utils import load_csv, load_joblib, load_json


sns.set(style="whitegrid")

PATHS = get_paths()


@st.cache_resource
def load_artifacts() -> Tuple[
    pd.DataFrame,
    Any,
    pd.DataFrame,
    pd.DataFrame,
    pd.DataFrame,
    Dict[str, Any],
]:
    """Load trimmed data, the random forest, tables and metadata (cached)."""
    trimmed = load_trimmed_view(PATHS.cleaned_data)
    forest = load_joblib(PATHS.model_artifact("random_forest"))
    regression_table = load_csv(PATHS.regression_table)
    comparison = load_csv(PATHS.comparison_metrics)
    predictions = load_csv(PATHS.predictions)
    training_metadata = load_json(PATHS.training_metadata)
    return trimmed, forest, regression_table, comparison, predictions, training_metadata


def build_manual_input(trimmed: pd.DataFrame) -> pd.DataFrame:
    """
    Collect one value per feature from sliders.

    Slider ranges span the 5th–95th percentile of the trimmed data, with the
    median as default.
    """
    values: Dict[str, float] = {}
    for feature in EXTENDED_FEATURES:
        series = trimmed[feature].dropna()
        if series.empty:
            values[feature] = 0.0
            continue
        low = float(series.quantile(0.05))
        high = float(series.quantile(0.95))
        values[feature] = st.sidebar.slider(
            TERM_LABELS.get(feature, feature),
            min_value=low,
            max_value=max(high, low + 0.01),
            value=float(np.clip(series.median(), low, high)),
        )
    return pd.DataFrame([values], columns=EXTENDED_FEATURES)


def plot_feature_importance(df_imp: pd.DataFrame) -> None:
    """Plot feature importance bar chart."""
    fig, ax = plt.subplots(figsize=(8, 4))
    sns.barplot(data=df_imp, x="importance", y="feature", ax=ax, palette="viridis")
    ax.set_title("Feature importances (Random Forest Regressor)")
    st.pyplot(fig)
    plt.close(fig)


def main() -> None:
    st.set_page_config(
        page_title="Education Spending & GDP Growth",
        layout="wide",
    )

    st.title("Education Spending and GDP Growth")
    st.markdown(
        """
Cross-country relationship between public education spending (% of GDP) and
annual GDP growth, from World Bank WDI data.

- **Left sidebar**: adjust indicators for a random forest prediction.
- **Main area**: regression results, held-out performance and diagnostics.
"""
    )

    required = [
        PATHS.cleaned_data,
        PATHS.model_artifact("random_forest"),
        PATHS.regression_table,
        PATHS.comparison_metrics,
        PATHS.predictions,
        PATHS.training_metadata,
    ]
    missing = [p for p in required if not p.exists()]
    if missing:
        st.error(
            "Pipeline outputs are missing ("
            + ", ".join(p.name for p in missing)
            + "). Run `python run_pipeline.py` once before launching the app."
        )
        st.stop()

    (
        trimmed,
        forest,
        regression_table,
        comparison,
        predictions,
        training_metadata,
    ) = load_artifacts()

    st.sidebar.header("What-if inputs")
    x_input = build_manual_input(trimmed)
    y_pred = float(forest.predict(x_input)[0])

    col_table, col_perf = st.columns([3, 2])

    with col_table:
        st.subheader("OLS regression results")
        st.dataframe(regression_table, use_container_width=True)
        st.caption("estimate (standard error); *** p<0.001, ** p<0.01, * p<0.05")

    with col_perf:
        st.subheader("Held-out performance")
        st.dataframe(comparison, use_container_width=True)
        split = training_metadata["split"]
        st.caption(
            f"{split['n_train']} training / {split['n_test']} test country-years, "
            f"seed {split['seed']}"
        )
        st.metric(label="Predicted GDP growth (%)", value=f"{y_pred:,.2f}")

    st.markdown("---")
    col_pred, col_imp = st.columns(2)

    with col_pred:
        st.subheader("Predicted vs. actual (test set)")
        fig = plot_predicted_vs_actual(predictions)
        st.pyplot(fig)
        plt.close(fig)

    with col_imp:
        st.subheader("Feature importance")
        plot_feature_importance(forest.feature_importances())
        best = training_metadata.get("random_forest", {}).get("best_params", {})
        if best:
            st.caption(f"Selected by {CV_FOLDS}-fold CV: {best}")


if __name__ == "__main__":
    main()
