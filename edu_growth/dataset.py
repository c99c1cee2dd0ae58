"""
Model-ready dataset and the reproducible train/test split.

The split is stratified on quantile buckets of GDP growth and is fully
determined by (seed, train fraction, strata, input rows). Its signature is
recorded at training time so evaluation can prove it re-derived the same
partition.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from .config import EXTENDED_FEATURES, N_STRATA, SEED, TARGET, TRAIN_FRACTION
from .exceptions import PipelineError, SchemaError

logger = logging.getLogger(__name__)

MODEL_COLUMNS = [TARGET] + EXTENDED_FEATURES
KEY_COLUMNS = ["country_code", "year"]


@dataclass(frozen=True)
class DatasetSplit:
    """Train/test partition of the model-ready dataset."""

    train: pd.DataFrame
    test: pd.DataFrame
    seed: int
    train_fraction: float
    n_strata: int
    n_buckets: int
    signature: str

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "train_fraction": self.train_fraction,
            "n_strata": self.n_strata,
            "n_buckets": self.n_buckets,
            "n_train": len(self.train),
            "n_test": len(self.test),
            "signature": self.signature,
        }


def build_model_ready(trimmed: pd.DataFrame) -> pd.DataFrame:
    """
    Select the analysis columns and keep complete cases only.

    The result is indexed by (country_code, year). Missing values are never
    imputed.
    """
    frame = trimmed.set_index(KEY_COLUMNS)[MODEL_COLUMNS]
    if not frame.index.is_unique:
        raise SchemaError("Trimmed data has duplicate (country_code, year) rows")
    model_ready = frame.dropna()
    logger.info(
        "Model-ready dataset: %d complete rows (%d incomplete dropped)",
        len(model_ready),
        len(frame) - len(model_ready),
    )
    return model_ready


def _target_buckets(
    y: pd.Series, n_strata: int, n_train: int, n_test: int
) -> Optional[pd.Series]:
    """
    Quantile buckets of the target usable for stratification.

    Every bucket needs at least 2 rows, and both partitions must be able to
    hold one row per bucket. Returns None when no such bucketing exists.
    """
    if y.nunique() < 2:
        return None
    n_bins = min(n_strata, n_train, n_test, len(y) // 2)
    while n_bins >= 2:
        buckets = pd.qcut(y, q=n_bins, labels=False, duplicates="drop")
        counts = buckets.value_counts()
        if len(counts) >= 2 and counts.min() >= 2 and len(counts) <= min(n_train, n_test):
            return buckets
        n_bins -= 1
    return None


def split_signature(
    model_ready: pd.DataFrame,
    train_mask: np.ndarray,
    seed: int,
    train_fraction: float,
    n_strata: int,
) -> str:
    """SHA-256 over split settings, model-ready contents and membership."""
    h = hashlib.sha256()
    settings = {"seed": seed, "train_fraction": train_fraction, "n_strata": n_strata}
    h.update(json.dumps(settings, sort_keys=True).encode("utf-8"))
    h.update(pd.util.hash_pandas_object(model_ready, index=True).to_numpy().tobytes())
    h.update(np.asarray(train_mask, dtype=bool).tobytes())
    return h.hexdigest()


def stratified_split(
    model_ready: pd.DataFrame,
    seed: int = SEED,
    train_fraction: float = TRAIN_FRACTION,
    n_strata: int = N_STRATA,
) -> DatasetSplit:
    """
    Split into train (floor(fraction * n) rows) and test (the rest).

    Rows keep their model-ready order inside each partition.
    """
    n = len(model_ready)
    n_train = int(np.floor(train_fraction * n))
    n_test = n - n_train
    if n_train < 1 or n_test < 1:
        raise PipelineError(
            f"Model-ready dataset has too few rows ({n}) for a {train_fraction:.0%} split"
        )

    buckets = _target_buckets(model_ready[TARGET], n_strata, n_train, n_test)
    if buckets is None:
        logger.warning("Too few rows to stratify on %s; using an unstratified split", TARGET)
        n_buckets = 1
    else:
        n_buckets = int(buckets.nunique())

    positions = np.arange(n)
    train_pos, _ = train_test_split(
        positions,
        train_size=train_fraction,
        random_state=seed,
        shuffle=True,
        stratify=None if buckets is None else buckets.to_numpy(),
    )
    train_mask = np.zeros(n, dtype=bool)
    train_mask[train_pos] = True

    split = DatasetSplit(
        train=model_ready.loc[train_mask].copy(),
        test=model_ready.loc[~train_mask].copy(),
        seed=seed,
        train_fraction=train_fraction,
        n_strata=n_strata,
        n_buckets=n_buckets,
        signature=split_signature(model_ready, train_mask, seed, train_fraction, n_strata),
    )
    logger.info(
        "Split %d rows into %d train / %d test (%d target buckets, seed=%d)",
        n,
        len(split.train),
        len(split.test),
        n_buckets,
        seed,
    )
    return split
