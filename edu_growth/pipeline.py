"""
Stage runner for the education spending vs GDP growth pipeline.

Stages (each re-runnable on its own from its input artifact):

1. clean     raw WDI extract -> cleaned country-year CSV
2. eda       cleaned CSV -> exploratory figures and summary
3. model     cleaned CSV -> trimmed -> split -> OLS and random forest fits
4. evaluate  cleaned CSV + fitted models -> held-out metrics and predictions

Usage:
    python run_pipeline.py --stage all
    python run_pipeline.py --stage 3
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from .config import (
    GROWTH_BOUNDS,
    MODEL_NAMES,
    N_ESTIMATORS,
    N_STRATA,
    SEED,
    TRAIN_FRACTION,
    PipelinePaths,
    get_paths,
)
from .data import clean_wdi, load_cleaned, load_raw_wdi, load_trimmed_view
from .dataset import build_model_ready, stratified_split
from .eda import build_eda_figures, summarize
from .evaluate import (
    compare_models,
    evaluate_model,
    plot_predicted_vs_actual,
    verify_split,
)
from .exceptions import ArtifactNotFoundError, ModelFittingError, PipelineError
from .models import (
    build_regression_table,
    fit_baseline,
    fit_extended,
    fit_random_forest,
)
from .utils import load_joblib, load_json, save_csv, save_figure, save_joblib, save_json

logger = logging.getLogger(__name__)

MODEL_STAGES = ("baseline", "extended", "random_forest")


@dataclass
class ModelStageResult:
    """Outcome of the model stage: the fits that succeeded and those that did not."""

    fits: Dict[str, Any] = field(default_factory=dict)
    failures: List[Dict[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def _derive_split(paths: PipelinePaths, seed: int, train_fraction: float, n_strata: int):
    """cleaned artifact -> trimmed view -> model-ready -> split."""
    trimmed = load_trimmed_view(paths.cleaned_data, bounds=GROWTH_BOUNDS)
    model_ready = build_model_ready(trimmed)
    split = stratified_split(
        model_ready, seed=seed, train_fraction=train_fraction, n_strata=n_strata
    )
    return trimmed, model_ready, split


def run_clean(paths: PipelinePaths, on_duplicate: str = "first", skiprows: int = 0) -> Path:
    """Stage 1: reshape and clean the raw extract."""
    raw = load_raw_wdi(paths.raw_data, skiprows=skiprows)
    cleaned = clean_wdi(raw, on_duplicate=on_duplicate)
    save_csv(cleaned, paths.cleaned_data)
    logger.info("Saved %d cleaned country-years to %s", len(cleaned), paths.cleaned_data)
    return paths.cleaned_data


def run_eda(paths: PipelinePaths) -> List[Path]:
    """Stage 2: exploratory figures and summary statistics."""
    cleaned = load_cleaned(paths.cleaned_data)
    written = []
    for filename, fig in build_eda_figures(cleaned).items():
        save_figure(fig, paths.eda_dir / filename)
        written.append(paths.eda_dir / filename)
    save_json(summarize(cleaned), paths.eda_summary)
    written.append(paths.eda_summary)
    logger.info("Saved %d EDA artifacts under %s", len(written), paths.eda_dir)
    return written


def run_models(
    paths: PipelinePaths,
    seed: int = SEED,
    train_fraction: float = TRAIN_FRACTION,
    n_strata: int = N_STRATA,
    n_estimators: int = N_ESTIMATORS,
) -> ModelStageResult:
    """
    Stage 3: fit the three models on the training partition.

    A model that cannot be fit is recorded in ``fit_failures.json`` and its
    stale artifact removed; the remaining models are still fit and saved.
    """
    trimmed, model_ready, split = _derive_split(paths, seed, train_fraction, n_strata)

    fitters: Dict[str, Callable[[], Any]] = {
        "baseline": lambda: fit_baseline(split.train),
        "extended": lambda: fit_extended(split.train),
        "random_forest": lambda: fit_random_forest(
            split.train, seed=seed, n_estimators=n_estimators
        ),
    }

    result = ModelStageResult()
    for stage, fitter in fitters.items():
        try:
            result.fits[stage] = fitter()
        except ModelFittingError as exc:
            logger.error("Could not fit %s model: %s", exc.stage, exc.reason)
            result.failures.append(exc.to_dict())

    for stage in MODEL_STAGES:
        artifact = paths.model_artifact(stage)
        if stage in result.fits:
            save_joblib(result.fits[stage], artifact)
        elif artifact.exists():
            artifact.unlink()

    linear = {
        MODEL_NAMES[stage]: result.fits[stage]
        for stage in ("baseline", "extended")
        if stage in result.fits
    }
    if linear:
        save_csv(build_regression_table(linear), paths.regression_table)
    elif paths.regression_table.exists():
        paths.regression_table.unlink()

    metadata: Dict[str, Any] = {
        "trim_bounds": list(GROWTH_BOUNDS),
        "n_trimmed": len(trimmed),
        "n_model_ready": len(model_ready),
        "split": split.to_metadata(),
        "models": {
            stage: paths.model_artifact(stage).name for stage in result.fits
        },
    }
    forest = result.fits.get("random_forest")
    if forest is not None:
        metadata["random_forest"] = {
            "n_estimators": n_estimators,
            "best_params": forest.best_params,
            "cv_results": forest.cv_results,
        }
    save_json(metadata, paths.training_metadata)

    if result.failures:
        save_json(result.failures, paths.fit_failures)
    elif paths.fit_failures.exists():
        paths.fit_failures.unlink()
    return result


def run_evaluate(paths: PipelinePaths) -> Dict[str, float]:
    """
    Stage 4: score the random forest on the re-derived test partition.

    The split is rebuilt from the cleaned artifact with the recorded
    settings and must match the recorded signature.
    """
    metadata = load_json(paths.training_metadata)
    recorded = metadata["split"]
    _, _, split = _derive_split(
        paths, recorded["seed"], recorded["train_fraction"], recorded["n_strata"]
    )
    verify_split(split, recorded)

    fitted = metadata.get("models", {})
    if "random_forest" not in fitted:
        raise ArtifactNotFoundError(
            "No random forest was fitted in the last model stage; see "
            f"{paths.fit_failures}"
        )
    models = {stage: load_joblib(paths.models_dir / name) for stage, name in fitted.items()}

    predictions, metrics = evaluate_model(models["random_forest"], split.test)
    comparison = compare_models(models, split.test)

    save_csv(pd.DataFrame([metrics], columns=["RMSE", "R_squared"]), paths.metrics)
    save_csv(predictions.reset_index(drop=True), paths.predictions)
    save_csv(comparison, paths.comparison_metrics)
    save_figure(plot_predicted_vs_actual(predictions), paths.evaluation_plot)
    logger.info("Random forest test metrics: %s", metrics)
    return metrics


STAGES: Dict[str, tuple] = {
    "1": ("clean", run_clean),
    "2": ("eda", run_eda),
    "3": ("model", run_models),
    "4": ("evaluate", run_evaluate),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Education spending vs GDP growth analysis pipeline."
    )
    parser.add_argument(
        "--stage",
        choices=list(STAGES) + ["all"],
        default="all",
        help="Pipeline stage to run: 1=clean, 2=eda, 3=model, 4=evaluate (default: all)",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Project directory holding data/ and outputs/ (default: repository root)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the requested stage(s); return a process exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    import matplotlib

    matplotlib.use("Agg")

    paths = get_paths(args.root)
    selected = list(STAGES) if args.stage == "all" else [args.stage]

    exit_code = 0
    for number in selected:
        name, stage_fn = STAGES[number]
        logger.info("[%s/%d] Running %s stage", number, len(STAGES), name)
        try:
            result = stage_fn(paths)
        except PipelineError as exc:
            logger.error("Stage %s (%s) failed: %s", number, name, exc)
            return 1
        if isinstance(result, ModelStageResult) and not result.ok:
            exit_code = 1
    return exit_code
