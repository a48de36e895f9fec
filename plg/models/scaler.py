"""
Feature standardisation with statistics exported from training.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Sequence, Union

import joblib
import numpy as np

from plg.features.config import NUM_FEATURES

__all__ = ["StandardScaler", "load_scaler"]

JOBLIB_SUFFIXES = (".joblib", ".pkl")


def _as_params(values: Sequence[float], name: str) -> np.ndarray:
    arr = np.array(values, dtype=np.float32)
    if arr.shape != (NUM_FEATURES,):
        raise ValueError(f"scaler '{name}' must hold {NUM_FEATURES} values, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"scaler '{name}' contains non-finite values")
    arr.setflags(write=False)
    return arr


class StandardScaler:
    """(x - mean) / scale, element-wise in float32. Parameters are read-only."""

    def __init__(self, mean: Sequence[float], scale: Sequence[float]):
        self.mean = _as_params(mean, "mean")
        self.scale = _as_params(scale, "scale")
        zeros = np.flatnonzero(self.scale == 0)
        if zeros.size:
            raise ValueError(f"scaler 'scale' is zero at indices {zeros.tolist()}")

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "StandardScaler":
        return cls(obj["mean"], obj["scale"])

    @classmethod
    def identity(cls) -> "StandardScaler":
        return cls([0.0] * NUM_FEATURES, [1.0] * NUM_FEATURES)

    def transform(self, features: Sequence[float]) -> np.ndarray:
        x = np.asarray(features, dtype=np.float32)
        if x.shape != self.mean.shape:
            raise ValueError(f"expected {NUM_FEATURES} features, got shape {x.shape}")
        return ((x - self.mean) / self.scale).astype(np.float32)

    def to_dict(self) -> Dict[str, list]:
        return {"mean": self.mean.tolist(), "scale": self.scale.tolist()}


def load_scaler(path: Union[str, Path]) -> StandardScaler:
    """
    scaler.json ({"mean": [...], "scale": [...]}) or a joblib dump of a fitted
    sklearn StandardScaler.
    """
    path = Path(path)
    if path.suffix.lower() in JOBLIB_SUFFIXES:
        fitted = joblib.load(path)
        if not hasattr(fitted, "mean_") or not hasattr(fitted, "scale_"):
            raise ValueError(f"{path.name} is not a fitted StandardScaler")
        return StandardScaler(fitted.mean_, fitted.scale_)
    obj = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(obj, dict):
        raise ValueError(f"{path.name}: expected a JSON object with 'mean' and 'scale'")
    return StandardScaler.from_dict(obj)
