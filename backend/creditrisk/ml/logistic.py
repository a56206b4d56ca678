from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Tuple

import numpy as np

from creditrisk.ml.errors import InvalidValueError, SchemaMismatchError
from creditrisk.ml.features import FeatureVector
from creditrisk.ml.scaler import Scaler

"""
ML Logistic Model.

Rôle (fonctionnel) :
- Porte les paramètres d’une régression logistique binaire (poids, biais, scaler, schéma, version).
- Calcule la probabilité de défaut : p = sigmoid(w·x + b) sur des features standardisées.
- Applique le seuil de décision (classify).
- Fournit les briques numériques de l’entraînement (log-loss L2 et gradient), utilisées par le Trainer.

Stabilité numérique :
- sigmoid branche sur le signe de z : l’argument de exp() est toujours <= 0,
  donc pas d’overflow même pour |z| très grand (ex : 1e6).
- la log-loss est calculée via logaddexp(0, z) - y*z (pas de log(0)).

Concurrence :
- LogisticModel est immuable (dataclass frozen + tuples) : un fit ou un reload produit
  toujours un nouvel objet. Lecture concurrente sans verrou.
"""

DEFAULT_THRESHOLD = 0.5


class Outcome(str, Enum):
    POSITIVE = "positive"  # défaut prédit
    NEGATIVE = "negative"


def sigmoid(z: float) -> float:
    """Sigmoïde stable (scalaire)."""
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    ez = math.exp(z)
    return ez / (1.0 + ez)


def sigmoid_array(z: np.ndarray) -> np.ndarray:
    """Sigmoïde stable (vectorisée), même branche que sigmoid()."""
    z = np.asarray(z, dtype=float)
    ez = np.exp(-np.abs(z))
    return np.where(z >= 0, 1.0 / (1.0 + ez), ez / (1.0 + ez))


def log_loss(X: np.ndarray, y: np.ndarray, w: np.ndarray, b: float, l2: float) -> float:
    """Log-loss moyenne + pénalité (l2/2)·‖w‖² (biais non régularisé)."""
    z = X.dot(w) + b
    data_loss = float(np.mean(np.logaddexp(0.0, z) - y * z))
    return data_loss + 0.5 * l2 * float(w.dot(w))


def gradient(X: np.ndarray, y: np.ndarray, w: np.ndarray, b: float, l2: float) -> Tuple[np.ndarray, float]:
    """Gradient de log_loss par rapport à (w, b)."""
    errors = sigmoid_array(X.dot(w) + b) - y
    grad_w = X.T.dot(errors) / len(y) + l2 * w
    grad_b = float(errors.mean())
    return grad_w, grad_b


@dataclass(frozen=True)
class TrainingMetadata:
    """Métadonnées d’entraînement (traçabilité du modèle)."""
    iterations: int
    final_loss: float
    l2: float
    learning_rate: float
    converged: bool
    n_samples: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class LogisticModel:
    """Modèle logistique prêt pour l’inférence (valeur immuable)."""
    feature_names: Tuple[str, ...]
    weights: Tuple[float, ...]
    bias: float
    scaler: Scaler
    version: str
    metadata: TrainingMetadata

    def __post_init__(self) -> None:
        if len(self.weights) != len(self.feature_names):
            raise ValueError("Un poids par feature est requis")
        if self.scaler.feature_names != self.feature_names:
            raise ValueError("Le scaler doit couvrir le même schéma (même ordre)")

    def _check(self, scaled: FeatureVector) -> None:
        if scaled.names != self.feature_names:
            raise SchemaMismatchError(self.feature_names, scaled.names)

    def logit(self, scaled: FeatureVector) -> float:
        """
        z = w·x + b (features déjà standardisées).

        Somme flottante ordinaire : un dépassement donne ±inf (sigmoid -> 1.0 / 0.0).
        Des termes +inf et -inf dans la même somme n’ont pas de sens (NaN) :
        InvalidValueError sur la feature au terme le plus grand.
        """
        self._check(scaled)
        terms = [w * x for w, x in zip(self.weights, scaled.values)]
        z = sum(terms, self.bias)
        if math.isnan(z):
            idx = max(range(len(terms)), key=lambda i: abs(terms[i]))
            raise InvalidValueError(
                self.feature_names[idx],
                scaled.values[idx],
                reason="contributions infinies de signes opposés",
            )
        return z

    def score(self, scaled: FeatureVector) -> float:
        """Probabilité de défaut dans [0, 1]."""
        return sigmoid(self.logit(scaled))

    def predict_proba(self, features: FeatureVector) -> float:
        """Raccourci : standardise puis score (features brutes)."""
        return self.score(self.scaler.transform(features))

    def contributions(self, scaled: FeatureVector) -> Dict[str, float]:
        """Contribution w_i·x_i de chaque feature au logit (explicabilité)."""
        self._check(scaled)
        return {name: w * x for name, w, x in zip(self.feature_names, self.weights, scaled.values)}

    @staticmethod
    def classify(probability: float, threshold: float = DEFAULT_THRESHOLD) -> Outcome:
        # Strict : p == seuil -> NEGATIVE
        return Outcome.POSITIVE if probability > threshold else Outcome.NEGATIVE
