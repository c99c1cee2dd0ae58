"""
Data loading, reshaping and cleaning for the education spending vs GDP
growth pipeline.

The raw input is a World Bank DataBank extract: one row per
(country, series) with one column per year, e.g. ``2000 [YR2000]``.
This module turns it into a tidy country-year table with one column per
indicator, and derives the trimmed view every later stage works on.

This module is reused by:
- the pipeline stages (`edu_growth.pipeline`)
- the Streamlit dashboard (`app.py`)
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Tuple

import pandas as pd

from .config import (
    CLEANED_COLUMNS,
    CORE_FIELDS,
    GROWTH_BOUNDS,
    INDICATOR_FIELDS,
    INDICATORS,
    TARGET,
)
from .exceptions import ArtifactNotFoundError, SchemaError

logger = logging.getLogger(__name__)

# x2000_yr2000 (DataBank extract) or x2000 (bulk download), after name cleaning
YEAR_COLUMN_PATTERN = re.compile(r"^x?(\d{4})(?:_yr\1)?$")
INDICATOR_COLUMN_CANDIDATES = ("series_code", "indicator_code")
DUPLICATE_POLICIES = ("first", "raise")


def clean_column_name(name: object) -> str:
    """
    Normalize a column header to snake_case.

    Runs of non-alphanumeric characters become ``_`` and names starting
    with a digit get an ``x`` prefix, so ``2000 [YR2000]`` -> ``x2000_yr2000``.
    """
    cleaned = re.sub(r"[^0-9a-zA-Z]+", "_", str(name)).strip("_").lower()
    if cleaned[:1].isdigit():
        cleaned = "x" + cleaned
    return cleaned


def clean_column_names(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of `df` with normalized, unique column names."""
    renamed = pd.Index([clean_column_name(c) for c in df.columns])
    clashes = sorted(set(renamed[renamed.duplicated()]))
    if clashes:
        raise SchemaError(f"Column names collide after cleaning: {clashes}")
    out = df.copy()
    out.columns = renamed
    return out


def load_raw_wdi(path: Path | str, skiprows: int = 0) -> pd.DataFrame:
    """
    Load the raw WDI extract and normalize its column names.

    Bulk downloads from the World Bank site start with 4 metadata rows;
    pass ``skiprows=4`` for those. DataBank extracts need no skipping.
    """
    path = Path(path)
    if not path.exists():
        raise ArtifactNotFoundError(f"Raw data file not found: {path}")
    df = pd.read_csv(path, skiprows=skiprows)
    logger.info("Loaded raw data %s: %d rows x %d columns", path, *df.shape)
    return clean_column_names(df)


def find_indicator_column(columns: Iterable[str]) -> str:
    """Return the name of the column holding indicator codes."""
    columns = list(columns)
    for candidate in INDICATOR_COLUMN_CANDIDATES:
        if candidate in columns:
            return candidate
    raise SchemaError(
        "Raw data has no indicator code column (expected one of "
        f"{', '.join(INDICATOR_COLUMN_CANDIDATES)})"
    )


def find_year_columns(columns: Iterable[str]) -> Dict[str, int]:
    """
    Map each year-coded column name to its 4-digit year.

    Columns that do not match the year pattern are left out of the mapping;
    it is an error only when no column matches at all.
    """
    year_map: Dict[str, int] = {}
    skipped = []
    for col in columns:
        match = YEAR_COLUMN_PATTERN.match(str(col))
        if match:
            year_map[col] = int(match.group(1))
        else:
            skipped.append(col)
    if not year_map:
        raise SchemaError("No column matches the year pattern (e.g. '2000 [YR2000]')")
    logger.debug("Non-year columns excluded from melting: %s", skipped)
    return year_map


def validate_raw(raw: pd.DataFrame) -> str:
    """Check the raw table has the id columns; return the indicator column name."""
    missing = [c for c in ("country_name", "country_code") if c not in raw.columns]
    if missing:
        raise SchemaError(f"Raw data is missing required columns: {', '.join(missing)}")
    return find_indicator_column(raw.columns)


def filter_indicators(raw: pd.DataFrame, indicator_col: str) -> pd.DataFrame:
    """Keep only rows for the tracked indicator codes."""
    codes = raw[indicator_col].astype(str).str.strip()
    keep = codes.isin(list(INDICATORS))
    dropped = int((~keep).sum())
    if dropped:
        logger.info("Dropped %d rows with unrecognized indicator codes", dropped)
    out = raw.loc[keep].copy()
    out[indicator_col] = codes[keep]
    return out


def melt_years(raw: pd.DataFrame, indicator_col: str) -> pd.DataFrame:
    """
    Wide -> long: one row per (country, indicator, year).

    Returns columns: country_name, country_code, indicator_code, year, value.
    """
    year_map = find_year_columns(raw.columns)
    id_vars = ["country_name", "country_code", indicator_col]
    df_long = raw.melt(
        id_vars=id_vars,
        value_vars=list(year_map),
        var_name="year",
        value_name="value",
    )
    df_long["year"] = df_long["year"].map(year_map).astype(int)
    return df_long.rename(columns={indicator_col: "indicator_code"})


def pivot_indicators(df_long: pd.DataFrame, on_duplicate: str = "first") -> pd.DataFrame:
    """
    Long -> wide: one row per (country_code, year), one column per indicator.

    Duplicate (country_code, indicator_code, year) observations are either
    resolved by keeping the first one in input order (``"first"``) or
    rejected (``"raise"``).
    """
    if on_duplicate not in DUPLICATE_POLICIES:
        raise ValueError(
            f"on_duplicate must be one of {DUPLICATE_POLICIES}, got {on_duplicate!r}"
        )

    keys = ["country_code", "indicator_code", "year"]
    duplicated = df_long.duplicated(subset=keys, keep="first")
    n_dup = int(duplicated.sum())
    if n_dup:
        if on_duplicate == "raise":
            examples = df_long.loc[duplicated, keys].head(3).to_dict("records")
            raise SchemaError(
                f"{n_dup} duplicate (country, indicator, year) observations, e.g. {examples}"
            )
        logger.warning("Keeping first of %d duplicate (country, indicator, year) observations", n_dup)
        df_long = df_long.loc[~duplicated]

    if df_long.empty:
        return pd.DataFrame(columns=CLEANED_COLUMNS)

    # A country is keyed by its code; the first name seen labels it
    names = df_long.groupby("country_code", sort=False)["country_name"]
    n_names = names.nunique()
    renamed = n_names[n_names > 1]
    if len(renamed):
        logger.warning(
            "Country codes with more than one name, keeping the first seen: %s",
            ", ".join(renamed.index.astype(str)),
        )

    wide = df_long.pivot(
        index=["country_code", "year"],
        columns="indicator_code",
        values="value",
    )
    # Indicators absent from the input still get an (all-missing) column
    wide = wide.reindex(columns=list(INDICATORS)).rename(columns=INDICATORS)
    wide.columns.name = None
    wide = wide.reset_index()
    wide.insert(0, "country_name", wide["country_code"].map(names.first()))
    return wide


def coerce_numeric(df: pd.DataFrame) -> pd.DataFrame:
    """Convert indicator columns to float; unparseable values become NaN."""
    out = df.copy()
    for col in INDICATOR_FIELDS:
        out[col] = pd.to_numeric(out[col], errors="coerce").astype(float)
    return out


def drop_missing_core(df: pd.DataFrame) -> pd.DataFrame:
    """Drop rows missing education spending or GDP growth."""
    out = df.dropna(subset=CORE_FIELDS)
    logger.info(
        "Dropped %d of %d country-years missing %s",
        len(df) - len(out),
        len(df),
        " or ".join(CORE_FIELDS),
    )
    return out


def clean_wdi(raw: pd.DataFrame, on_duplicate: str = "first") -> pd.DataFrame:
    """
    End-to-end reshape and cleaning:

    1. Keep the 5 tracked indicators
    2. Melt year columns into (year, value)
    3. Pivot indicators into named columns
    4. Coerce indicator values to numbers
    5. Drop rows missing education spending or GDP growth
    """
    indicator_col = validate_raw(raw)
    filtered = filter_indicators(raw, indicator_col)
    df_long = melt_years(filtered, indicator_col)
    wide = pivot_indicators(df_long, on_duplicate=on_duplicate)
    cleaned = drop_missing_core(coerce_numeric(wide))
    cleaned = cleaned.assign(year=cleaned["year"].astype(int))
    cleaned = cleaned[CLEANED_COLUMNS].sort_values(["country_code", "year"])
    return cleaned.reset_index(drop=True)


def load_cleaned(path: Path | str) -> pd.DataFrame:
    """Load the cleaned country-year table written by the clean stage."""
    path = Path(path)
    if not path.exists():
        raise ArtifactNotFoundError(
            f"Cleaned data not found: {path}. Run the clean stage first."
        )
    df = pd.read_csv(
        path,
        dtype={"country_name": str, "country_code": str},
        keep_default_na=False,
        na_values={col: ["", "NA", "NaN", "nan"] for col in INDICATOR_FIELDS},
    )
    missing = [c for c in CLEANED_COLUMNS if c not in df.columns]
    if missing:
        raise SchemaError(f"Cleaned data is missing columns: {', '.join(missing)}")
    df = df[CLEANED_COLUMNS].copy()
    df["year"] = df["year"].astype(int)
    df[INDICATOR_FIELDS] = df[INDICATOR_FIELDS].astype(float)
    return df


def trim_growth(
    cleaned: pd.DataFrame, bounds: Tuple[float, float] = GROWTH_BOUNDS
) -> pd.DataFrame:
    """Keep observations whose GDP growth lies within `bounds` (inclusive)."""
    low, high = bounds
    keep = cleaned[TARGET].between(low, high, inclusive="both")
    logger.info(
        "Trimmed %d of %d observations with GDP growth outside [%g, %g]",
        int((~keep).sum()),
        len(cleaned),
        low,
        high,
    )
    return cleaned.loc[keep].copy()


def load_trimmed_view(
    path: Path | str, bounds: Tuple[float, float] = GROWTH_BOUNDS
) -> pd.DataFrame:
    """Derive the trimmed dataset from the cleaned artifact on disk."""
    return trim_growth(load_cleaned(path), bounds=bounds)
