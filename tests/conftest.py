"""Shared fixtures: a synthetic World Bank DataBank extract."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from edu_growth.config import get_paths
from edu_growth.data import clean_column_names, clean_wdi

YEARS = list(range(2000, 2010))
COUNTRIES = [
    ("Alpha", "AAA"),
    ("Beta", "BBB"),
    ("Gamma", "GGG"),
    ("Delta", "DDD"),
    ("Jordan", "JOR"),
    ("Epsilon", "EEE"),
]
SERIES_NAMES = {
    "SE.XPD.TOTL.GD.ZS": "Government expenditure on education, total (% of GDP)",
    "NY.GDP.MKTP.KD.ZG": "GDP growth (annual %)",
    "SL.UEM.TOTL.ZS": "Unemployment, total (% of total labor force)",
    "FP.CPI.TOTL.ZG": "Inflation, consumer prices (annual %)",
    "SP.POP.GROW": "Population growth (annual %)",
}


def year_column(year):
    return f"{year} [YR{year}]"


def build_raw_wdi(seed=0):
    """
    DataBank-style extract: 6 countries x 10 years x 5 series, plus an
    untracked series and the two footer lines DataBank appends.

    Planted cases:
    - Alpha 2001 GDP growth = 25 (outside the trimming bounds)
    - Beta 2002 unemployment = ".." (missing)
    - Gamma 2003 education spending = ".." (dropped by cleaning)
    """
    rng = np.random.default_rng(seed)
    n = len(YEARS)
    rows = []
    for name, code in COUNTRIES:
        edu = rng.uniform(2, 7, n)
        unemp = rng.uniform(3, 15, n)
        infl = rng.uniform(0, 10, n)
        pop = rng.uniform(-0.5, 3, n)
        growth = 0.4 * edu - 0.1 * unemp + 0.05 * infl + 0.5 * pop + rng.normal(0, 1, n)
        series = {
            "SE.XPD.TOTL.GD.ZS": edu,
            "NY.GDP.MKTP.KD.ZG": growth,
            "SL.UEM.TOTL.ZS": unemp,
            "FP.CPI.TOTL.ZG": infl,
            "SP.POP.GROW": pop,
        }
        for series_code, values in series.items():
            row = {
                "Country Name": name,
                "Country Code": code,
                "Series Name": SERIES_NAMES[series_code],
                "Series Code": series_code,
            }
            row.update({year_column(y): f"{v:.4f}" for y, v in zip(YEARS, values)})
            rows.append(row)
        untracked = {
            "Country Name": name,
            "Country Code": code,
            "Series Name": "GDP per capita (current US$)",
            "Series Code": "NY.GDP.PCAP.CD",
        }
        untracked.update({year_column(y): "1000" for y in YEARS})
        rows.append(untracked)

    rows.append({"Country Name": "Data from database: World Development Indicators"})
    rows.append({"Country Name": "Last Updated: 12/16/2024"})
    raw = pd.DataFrame(rows, columns=list(rows[0]))

    def plant(code, series_code, year, value):
        mask = (raw["Country Code"] == code) & (raw["Series Code"] == series_code)
        raw.loc[mask, year_column(year)] = value

    plant("AAA", "NY.GDP.MKTP.KD.ZG", 2001, "25")
    plant("BBB", "SL.UEM.TOTL.ZS", 2002, "..")
    plant("GGG", "SE.XPD.TOTL.GD.ZS", 2003, "..")
    return raw


@pytest.fixture
def raw_wdi():
    return build_raw_wdi()


@pytest.fixture
def cleaned(raw_wdi):
    return clean_wdi(clean_column_names(raw_wdi))


@pytest.fixture
def paths(tmp_path, raw_wdi):
    """Project layout under a temporary root with the raw extract in place."""
    paths = get_paths(tmp_path)
    paths.raw_data.parent.mkdir(parents=True)
    raw_wdi.to_csv(paths.raw_data, index=False)
    return paths
