import os
import sys
from pathlib import Path
from typing import Sequence

import numpy as np
import pytest

os.environ.setdefault("ENV", "test")
os.environ.setdefault("LOAD_MODEL_ON_STARTUP", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

# backend/ sur le sys.path pour `import creditrisk`
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from creditrisk.ml.features import TrainingRow  # noqa: E402
from creditrisk.ml.logistic import LogisticModel, TrainingMetadata  # noqa: E402
from creditrisk.ml.scaler import Scaler  # noqa: E402


def build_model(
    weights: Sequence[float],
    bias: float,
    *,
    names: Sequence[str] | None = None,
    means: Sequence[float] | None = None,
    stds: Sequence[float] | None = None,
    version: str = "test_v1",
) -> LogisticModel:
    n = len(weights)
    names = tuple(names or [f"x{i}" for i in range(n)])
    scaler = Scaler(
        feature_names=names,
        means=tuple(means or [0.0] * n),
        stds=tuple(stds or [1.0] * n),
    )
    return LogisticModel(
        feature_names=names,
        weights=tuple(float(w) for w in weights),
        bias=float(bias),
        scaler=scaler,
        version=version,
        metadata=TrainingMetadata(
            iterations=0,
            final_loss=0.0,
            l2=0.0,
            learning_rate=0.1,
            converged=True,
            n_samples=0,
        ),
    )


def gaussian_clusters(n_per_class: int = 200, seed: int = 7, spread: float = 0.6) -> list[TrainingRow]:
    """Deux nuages 2-D séparés : label 0 autour de (-2, -2), label 1 autour de (2, 2)."""
    rng = np.random.default_rng(seed)
    rows = []
    for label, center in ((0, -2.0), (1, 2.0)):
        points = rng.normal(center, spread, size=(n_per_class, 2))
        for a, b in points:
            rows.append(TrainingRow.from_mapping({"a": float(a), "b": float(b)}, label))
    return rows


@pytest.fixture
def example_model() -> LogisticModel:
    """weights=[2.0], bias=-1.0, mean=0, std=1 sur la feature `x`."""
    return build_model([2.0], -1.0, names=["x"], version="example_v1")


@pytest.fixture
def credit_model() -> LogisticModel:
    return build_model(
        [-0.8, 1.1, 0.9],
        -0.5,
        names=["income_k", "debt_to_income", "credit_utilization"],
        means=[50.0, 0.3, 0.4],
        stds=[20.0, 0.1, 0.2],
        version="credit_v1",
    )


@pytest.fixture
def cluster_rows() -> list[TrainingRow]:
    return gaussian_clusters()
