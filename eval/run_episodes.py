"""Run K replications of the hub and aggregate metrics."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import yaml

from hub.runner import run_episode
from eval.metrics import aggregate_metrics, confidence_interval_95

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "default.yaml"


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load config YAML (or JSON); flatten the sim section into params for run_episode."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    path = Path(config_path)
    if not path.exists():
        return _default_params()
    with open(path) as f:
        if path.suffix == ".json":
            cfg = json.load(f) or {}
        else:
            cfg = yaml.safe_load(f) or {}
    return _config_to_params(cfg)


def load_eval_settings(config_path: str | Path | None = None) -> dict[str, Any]:
    """Return the eval section (replications, base_seed) with defaults."""
    path = Path(config_path or DEFAULT_CONFIG_PATH)
    cfg: dict[str, Any] = {}
    if path.exists():
        with open(path) as f:
            cfg = (json.load(f) if path.suffix == ".json" else yaml.safe_load(f)) or {}
    ev = cfg.get("eval", {})
    return {
        "replications": ev.get("replications", 30),
        "base_seed": ev.get("base_seed", 0),
    }


def _default_params() -> dict[str, Any]:
    return {
        "horizon": 1440,
        "sources": [0.5, 0.4, 0.5],
        "perishable_share": 0.1,
        "perishable": {
            "buffer_capacity": 8,
            "min_service": 5,
            "max_service": 10,
            "deadline_minutes": 15,
            "devices": 2,
            "device_capacity": 1,
        },
        "regular": {
            "buffer_capacity": 10,
            "min_service": 8,
            "max_service": 15,
            "deadline_minutes": 20,
            "devices": 2,
            "device_capacity": 1,
        },
    }


def _config_to_params(cfg: dict[str, Any]) -> dict[str, Any]:
    """Flatten config into params dict for run_episode."""
    sim = cfg.get("sim", {})
    defaults = _default_params()
    classes = sim.get("classes", {})
    params: dict[str, Any] = {
        "horizon": sim.get("horizon", defaults["horizon"]),
        "sources": list(sim.get("sources", defaults["sources"])),
        "perishable_share": sim.get("perishable_share", defaults["perishable_share"]),
    }
    for name in ("perishable", "regular"):
        merged = dict(defaults[name])
        merged.update(classes.get(name, {}) or {})
        params[name] = merged
    return params


def run_episodes(
    params: dict[str, Any],
    K: int,
    base_seed: int = 0,
) -> tuple[dict[str, Any], dict[str, Any], list[dict]]:
    """
    Run K episodes with seeds base_seed .. base_seed+K-1.
    Returns (mean_metrics, std_metrics, all_metrics_list).
    """
    metrics_list: list[dict] = []
    for i in range(K):
        seed = base_seed + i
        metrics_list.append(run_episode(copy.deepcopy(params), seed))

    mean_metrics, std_metrics = aggregate_metrics(metrics_list)
    return mean_metrics, std_metrics, metrics_list


def evaluate_config(
    params: dict[str, Any],
    K: int,
    base_seed: int = 0,
    ci_metrics: tuple[str, ...] = ("rejection_rate", "eviction_rate", "mean_wait", "throughput"),
) -> dict[str, Any]:
    """
    Run K episodes and return summary: mean_metrics, std_metrics, 95% CIs for key
    metrics and the per-episode metrics under "all_metrics".
    """
    mean_m, std_m, all_m = run_episodes(params, K, base_seed)
    ci = {m: confidence_interval_95([r[m] for r in all_m]) for m in ci_metrics if all_m}
    return {
        "mean_metrics": mean_m,
        "std_metrics": std_m,
        "ci95": ci,
        "replications": K,
        "base_seed": base_seed,
        "params": params,
        "all_metrics": all_m,
    }
