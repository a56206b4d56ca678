from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from creditrisk.ml.errors import EmptyOrSingleClassError, NonFiniteError
from creditrisk.ml.features import TrainingRow
from creditrisk.ml.logistic import LogisticModel, TrainingMetadata, gradient, log_loss
from creditrisk.ml.scaler import Scaler

"""
ML Trainer.

Rôle (fonctionnel) :
- Produit un LogisticModel à partir de lignes labellisées (TrainingRow).
- Descente de gradient batch sur la log-loss régularisée L2 :
    L(w, b) = -(1/N) Σ [y·log(p) + (1-y)·log(1-p)] + (λ/2)·‖w‖²
  le biais n’est pas régularisé.
- Pipeline : contrôle des labels -> Scaler.fit -> standardisation -> itérations -> modèle.

Arrêt :
- |loss_prev - loss| < tolerance (convergence) ou max_iterations atteint.
- Une hausse de loss au-delà de la tolérance n’est pas une convergence : une divergence
  continue d’itérer jusqu’à NonFiniteError ou max_iterations.

Notes :
- Fonction pure (données, config) -> modèle : pas d’I/O hormis les logs.
- CPU-bound : à exécuter hors du chemin des requêtes (voir services/training_service.py).
"""

log = logging.getLogger("creditrisk.trainer")


class TrainingConfig(BaseModel):
    """Hyper-paramètres d’entraînement (valeurs finies, défauts documentés)."""
    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)

    learning_rate: float = Field(default=0.1, gt=0)
    l2: float = Field(default=0.01, ge=0)
    max_iterations: int = Field(default=1000, ge=1)
    tolerance: float = Field(default=1e-6, ge=0)


def default_version(tag: str = "v1") -> str:
    """Version unique : logreg_<tag>_<YYYYmmdd-HHMMSS>-<8 hex> (UTC + suffixe aléatoire)."""
    now = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return f"logreg_{tag}_{now}-{uuid.uuid4().hex[:8]}"


def _check_labels(rows: Sequence[TrainingRow]) -> np.ndarray:
    if not rows:
        raise EmptyOrSingleClassError("Jeu d'entraînement vide")
    y = np.asarray([row.label for row in rows], dtype=float)
    positives = int(y.sum())
    if positives == 0 or positives == len(y):
        raise EmptyOrSingleClassError(
            "Les deux labels (0 et 1) doivent être présents",
            details={"n_samples": len(y), "positives": positives},
        )
    return y


def _all_finite(*values) -> bool:
    return all(bool(np.all(np.isfinite(v))) for v in values)


def fit(
    rows: Sequence[TrainingRow],
    config: Optional[TrainingConfig] = None,
    *,
    version: Optional[str] = None,
) -> LogisticModel:
    """
    Entraîne un nouveau LogisticModel.

    Erreurs :
    - EmptyOrSingleClassError : jeu vide ou un seul label
    - DegenerateFeatureError : feature à variance nulle (via Scaler.fit)
    - SchemaMismatchError : lignes avec des schémas différents
    - NonFiniteError : loss / gradient / paramètres non finis (divergence)
    """
    cfg = config or TrainingConfig()
    y = _check_labels(rows)

    scaler = Scaler.fit(rows)
    names = scaler.feature_names
    X = scaler.transform_matrix([row.features.conform_to(names).values for row in rows])

    w = np.zeros(len(names), dtype=float)
    b = 0.0
    prev_loss: Optional[float] = None
    loss = float("nan")
    iterations = 0
    converged = False

    # overflow / inf gérés explicitement via NonFiniteError
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        while True:
            loss = log_loss(X, y, w, b, cfg.l2)
            if not _all_finite(loss):
                raise NonFiniteError(
                    f"Loss non finie à l'itération {iterations}",
                    details={"iteration": iterations, "learning_rate": cfg.learning_rate},
                )

            if prev_loss is not None and abs(prev_loss - loss) < cfg.tolerance:
                converged = True
                break
            if iterations >= cfg.max_iterations:
                break

            grad_w, grad_b = gradient(X, y, w, b, cfg.l2)
            if not _all_finite(grad_w, grad_b):
                raise NonFiniteError(
                    f"Gradient non fini à l'itération {iterations}",
                    details={"iteration": iterations, "learning_rate": cfg.learning_rate},
                )

            w = w - cfg.learning_rate * grad_w
            b = b - cfg.learning_rate * grad_b
            iterations += 1
            if not _all_finite(w, b):
                raise NonFiniteError(
                    f"Paramètres non finis à l'itération {iterations}",
                    details={"iteration": iterations, "learning_rate": cfg.learning_rate},
                )
            prev_loss = loss

    model_version = version or default_version()
    metadata = TrainingMetadata(
        iterations=iterations,
        final_loss=loss,
        l2=cfg.l2,
        learning_rate=cfg.learning_rate,
        converged=converged,
        n_samples=len(rows),
    )

    level = logging.INFO if converged else logging.WARNING
    log.log(
        level,
        "training finished" if converged else "training stopped at max_iterations",
        extra={
            "model_version": model_version,
            "iterations": iterations,
            "final_loss": loss,
            "converged": converged,
            "n_samples": len(rows),
        },
    )

    return LogisticModel(
        feature_names=names,
        weights=tuple(float(v) for v in w),
        bias=float(b),
        scaler=scaler,
        version=model_version,
        metadata=metadata,
    )
