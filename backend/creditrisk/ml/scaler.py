from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from creditrisk.ml.errors import (
    DegenerateFeatureError,
    EmptyOrSingleClassError,
    InvalidValueError,
    SchemaMismatchError,
)
from creditrisk.ml.features import FeatureVector, TrainingRow

"""
ML Scaler.

Rôle (fonctionnel) :
- Standardise les features : (x - mean) / std, feature par feature.
- Calculé une seule fois à l’entraînement puis embarqué dans le LogisticModel :
  train == inference, jamais recalculé par requête.

Notes :
- std = écart-type de population (ddof=0), identique à StandardScaler (scikit-learn).
- Une feature à variance nulle (std < STD_EPSILON) est refusée à l’entraînement
  (DegenerateFeatureError) au lieu d’être divisée silencieusement.
"""

STD_EPSILON = 1e-12


@dataclass(frozen=True)
class Scaler:
    feature_names: Tuple[str, ...]
    means: Tuple[float, ...]
    stds: Tuple[float, ...]

    def __post_init__(self) -> None:
        n = len(self.feature_names)
        if len(self.means) != n or len(self.stds) != n:
            raise ValueError("means/stds doivent avoir une valeur par feature")

    @classmethod
    def fit(cls, rows: Sequence[TrainingRow]) -> "Scaler":
        """Calcule mean/std par feature sur le jeu d’entraînement."""
        if not rows:
            raise EmptyOrSingleClassError("Jeu d'entraînement vide")

        names = rows[0].features.names
        X = np.asarray([row.features.conform_to(names).values for row in rows], dtype=float)

        means = X.mean(axis=0)
        stds = X.std(axis=0)

        degenerate = [name for name, std in zip(names, stds) if not std >= STD_EPSILON]
        if degenerate:
            raise DegenerateFeatureError(degenerate)

        return cls(
            feature_names=tuple(names),
            means=tuple(float(m) for m in means),
            stds=tuple(float(s) for s in stds),
        )

    def transform(self, features: FeatureVector) -> FeatureVector:
        """Applique (x - mean) / std ; lève SchemaMismatchError si les noms diffèrent."""
        if set(features.names) != set(self.feature_names) or len(features) != len(self.feature_names):
            raise SchemaMismatchError(self.feature_names, features.names)
        ordered = features.conform_to(self.feature_names)

        scaled = []
        for name, x, mean, std in zip(self.feature_names, ordered.values, self.means, self.stds):
            z = (x - mean) / std
            # x fini mais hors de l’échelle du modèle (ex : 1e308 avec std=1e-3)
            if not math.isfinite(z):
                raise InvalidValueError(name, x, reason="valeur hors de l’échelle du modèle")
            scaled.append(z)
        return FeatureVector(names=self.feature_names, values=tuple(scaled))

    def transform_matrix(self, X: np.ndarray) -> np.ndarray:
        """Même transformation sur une matrice (colonnes dans l’ordre du scaler)."""
        data = np.asarray(X, dtype=float)
        if data.ndim != 2 or data.shape[1] != len(self.feature_names):
            raise ValueError(f"Matrice attendue (n, {len(self.feature_names)}), reçu {data.shape}")
        return (data - np.asarray(self.means)) / np.asarray(self.stds)
