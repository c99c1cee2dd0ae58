"""
Utility functions for artifact persistence.

Every writer goes through `atomic_write`, so a stage that fails half-way
never leaves a truncated file behind.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import joblib
import pandas as pd

from .exceptions import ArtifactNotFoundError

logger = logging.getLogger(__name__)


@contextmanager
def atomic_write(path: Path | str) -> Iterator[Path]:
    """
    Yield a temporary sibling path; move it onto `path` only on success.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        yield tmp_path
        tmp_path.replace(path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
    logger.debug("Wrote %s", path)


def _require(path: Path) -> Path:
    if not path.exists():
        raise ArtifactNotFoundError(f"Artifact not found: {path}")
    return path


def save_csv(df: pd.DataFrame, path: Path | str, index: bool = False) -> None:
    """Write a DataFrame as CSV."""
    with atomic_write(path) as tmp:
        df.to_csv(tmp, index=index)


def load_csv(path: Path | str) -> pd.DataFrame:
    """Read a CSV artifact."""
    return pd.read_csv(_require(Path(path)))


def save_joblib(obj: Any, path: Path | str) -> None:
    """Persist an object to disk using joblib."""
    with atomic_write(path) as tmp:
        joblib.dump(obj, tmp)


def load_joblib(path: Path | str) -> Any:
    """Load a joblib-persisted object."""
    return joblib.load(_require(Path(path)))


def save_json(data: Any, path: Path | str) -> None:
    """Save a Python object as JSON (UTF-8, pretty-printed)."""
    with atomic_write(path) as tmp:
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)


def load_json(path: Path | str) -> Any:
    """Load JSON data into a Python object."""
    with _require(Path(path)).open("r", encoding="utf-8") as f:
        return json.load(f)


def save_figure(fig, path: Path | str, dpi: int = 150) -> None:
    """Save a matplotlib figure as PNG and close it."""
    import matplotlib.pyplot as plt

    try:
        with atomic_write(path) as tmp:
            fig.savefig(tmp, dpi=dpi, bbox_inches="tight", format="png")
    finally:
        plt.close(fig)
