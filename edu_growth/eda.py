"""
Exploratory analysis of the cleaned country-year table.

Figures:
- Education spending vs GDP growth, all observations and trimmed
- A focus country against the global cloud
- Education spending over time: focus country vs global yearly average
- Histograms of the five indicators
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .config import FOCUS_COUNTRY, GROWTH_BOUNDS, INDICATOR_FIELDS, TARGET
from .data import trim_growth

logger = logging.getLogger(__name__)

sns.set(style="whitegrid")

X_LABEL = "Education Spending (% of GDP)"
Y_LABEL = "GDP Growth (%)"


def summarize(
    cleaned: pd.DataFrame, bounds: Tuple[float, float] = GROWTH_BOUNDS
) -> Dict[str, Any]:
    """
    Summary statistics, row counts before/after trimming, and the Pearson
    correlation of education spending with GDP growth on the trimmed data.
    """
    trimmed = trim_growth(cleaned, bounds=bounds)
    corr = trimmed["education_spending"].corr(trimmed[TARGET])
    describe = cleaned[INDICATOR_FIELDS].describe()
    return {
        "n_cleaned": int(len(cleaned)),
        "n_trimmed": int(len(trimmed)),
        "n_countries": int(cleaned["country_code"].nunique()),
        "year_range": [int(cleaned["year"].min()), int(cleaned["year"].max())]
        if len(cleaned)
        else None,
        "correlation_trimmed": None if np.isnan(corr) else float(corr),
        "describe": {
            col: {stat: float(val) for stat, val in describe[col].items() if not np.isnan(val)}
            for col in describe.columns
        },
    }


def global_yearly_average(trimmed: pd.DataFrame) -> pd.DataFrame:
    """Mean education spending across countries for each year."""
    return (
        trimmed.groupby("year", as_index=False)["education_spending"]
        .mean()
        .rename(columns={"education_spending": "avg_education_spending"})
    )


def plot_spending_vs_growth(df: pd.DataFrame, title: str):
    """Scatter with a linear trend line and confidence band."""
    fig, ax = plt.subplots(figsize=(8, 6))
    sns.regplot(
        data=df,
        x="education_spending",
        y=TARGET,
        scatter_kws={"alpha": 0.4},
        line_kws={"color": "blue"},
        ax=ax,
    )
    ax.set_title(title)
    ax.set_xlabel(X_LABEL)
    ax.set_ylabel(Y_LABEL)
    return fig


def plot_country_vs_global(trimmed: pd.DataFrame, country: str):
    """Global observations in grey, the focus country highlighted with its own trend."""
    country_df = trimmed[trimmed["country_name"] == country]
    fig, ax = plt.subplots(figsize=(8, 6))
    ax.scatter(
        trimmed["education_spending"], trimmed[TARGET], color="grey", alpha=0.3, s=12
    )
    sns.regplot(
        data=country_df,
        x="education_spending",
        y=TARGET,
        ci=None,
        color="red",
        ax=ax,
    )
    ax.set_title(f"Education Spending vs GDP Growth: {country} vs Global")
    ax.set_xlabel(X_LABEL)
    ax.set_ylabel(Y_LABEL)
    fig.text(
        0.5,
        -0.02,
        f"Grey points represent global observations; red points represent {country}",
        ha="center",
        fontsize=9,
    )
    return fig


def plot_spending_over_time(trimmed: pd.DataFrame, country: str):
    """Focus country's education spending against the global yearly average."""
    global_trend = global_yearly_average(trimmed)
    country_df = trimmed[trimmed["country_name"] == country].sort_values("year")

    fig, ax = plt.subplots(figsize=(9, 6))
    ax.plot(
        global_trend["year"],
        global_trend["avg_education_spending"],
        color="blue",
        linewidth=1,
        label="Global average",
    )
    ax.plot(
        country_df["year"],
        country_df["education_spending"],
        color="red",
        linewidth=1,
        label=country,
    )
    ax.set_title(f"Education Spending Over Time: {country} vs Global Average")
    ax.set_xlabel("Year")
    ax.set_ylabel(X_LABEL)
    ax.legend()
    return fig


def plot_histograms(cleaned: pd.DataFrame, bins: int = 30):
    """One histogram per indicator, each on its own scale."""
    fig, axes = plt.subplots(2, 3, figsize=(10, 8))
    for ax, col in zip(axes.flat, INDICATOR_FIELDS):
        sns.histplot(cleaned[col].dropna(), bins=bins, color="steelblue", ax=ax)
        ax.set_title(col)
        ax.set_xlabel("Value")
        ax.set_ylabel("Frequency")
    for ax in list(axes.flat)[len(INDICATOR_FIELDS):]:
        ax.set_visible(False)
    fig.suptitle("Distributions of Key Economic Variables")
    fig.tight_layout()
    return fig


def build_eda_figures(
    cleaned: pd.DataFrame,
    country: str = FOCUS_COUNTRY,
    bounds: Tuple[float, float] = GROWTH_BOUNDS,
) -> Dict[str, Any]:
    """
    Build every EDA figure, keyed by output file name.

    The country comparison figures are skipped when `country` has no
    trimmed observations.
    """
    trimmed = trim_growth(cleaned, bounds=bounds)
    figures = {
        "education_vs_gdp_global.png": plot_spending_vs_growth(
            cleaned, "Education Spending vs GDP Growth (Global)"
        ),
        "education_vs_gdp_global_trimmed.png": plot_spending_vs_growth(
            trimmed, "Education Spending vs GDP Growth (Global, Trimmed)"
        ),
        "histograms_all_variables.png": plot_histograms(cleaned),
    }
    if (trimmed["country_name"] == country).any():
        slug = country.lower().replace(" ", "_")
        figures[f"{slug}_vs_global_scatter.png"] = plot_country_vs_global(trimmed, country)
        figures["education_spending_trends.png"] = plot_spending_over_time(trimmed, country)
    else:
        logger.warning("No trimmed observations for %s; skipping country figures", country)
    return figures
