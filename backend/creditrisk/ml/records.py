from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from creditrisk.ml.errors import FormatError
from creditrisk.ml.logistic import LogisticModel, TrainingMetadata
from creditrisk.ml.scaler import Scaler

"""
ML Model Records.

Rôle (fonctionnel) :
- Définit le “record” de paramètres échangé avec la couche de stockage :
  schéma, poids, biais, scaler (means/stds), régularisation, version, métadonnées.
- export_record(model) -> dict (types Python simples, sérialisable JSON / joblib)
- load_record(dict) -> LogisticModel, ou FormatError si le record est corrompu / incompatible.

Notes :
- La validation (longueurs, valeurs finies, std > 0, noms uniques) est faite par Pydantic :
  un modèle rechargé est toujours complet avant d’être publié dans le registry.
- Le tag `format` permet de refuser un record d’une autre famille / version de format.
"""

RECORD_FORMAT = "creditrisk.logreg/1"


class _ScalerRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    means: List[float]
    stds: List[float]


class _MetadataRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    iterations: int = Field(ge=0)
    final_loss: float
    learning_rate: float = Field(gt=0)
    converged: bool
    n_samples: int = Field(ge=0)
    created_at: datetime


class ModelRecord(BaseModel):
    """Record persistant d’un LogisticModel (contrat avec le stockage)."""
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    format: Literal["creditrisk.logreg/1"] = RECORD_FORMAT
    version: str = Field(min_length=1)
    feature_names: List[str] = Field(min_length=1)
    weights: List[float]
    bias: float
    scaler: _ScalerRecord
    l2: float = Field(ge=0)
    metadata: _MetadataRecord

    @model_validator(mode="after")
    def _check_shapes(self) -> "ModelRecord":
        n = len(self.feature_names)
        if any(not name for name in self.feature_names):
            raise ValueError("feature_names ne doit pas contenir de nom vide")
        if len(set(self.feature_names)) != n:
            raise ValueError("feature_names doit être unique")
        if len(self.weights) != n:
            raise ValueError(f"weights: {len(self.weights)} valeurs pour {n} features")
        if len(self.scaler.means) != n or len(self.scaler.stds) != n:
            raise ValueError(f"scaler: means/stds doivent contenir {n} valeurs")
        if any(std <= 0 for std in self.scaler.stds):
            raise ValueError("scaler: tous les stds doivent être > 0")
        return self


def export_record(model: LogisticModel) -> Dict[str, Any]:
    """Exporte un modèle en record (dict de types simples)."""
    meta = model.metadata
    return {
        "format": RECORD_FORMAT,
        "version": model.version,
        "feature_names": list(model.feature_names),
        "weights": list(model.weights),
        "bias": model.bias,
        "scaler": {
            "means": list(model.scaler.means),
            "stds": list(model.scaler.stds),
        },
        "l2": meta.l2,
        "metadata": {
            "iterations": meta.iterations,
            "final_loss": meta.final_loss,
            "learning_rate": meta.learning_rate,
            "converged": meta.converged,
            "n_samples": meta.n_samples,
            "created_at": meta.created_at.isoformat(),
        },
    }


def load_record(record: Any) -> LogisticModel:
    """Reconstruit un LogisticModel depuis un record ; FormatError si invalide."""
    if not isinstance(record, dict):
        raise FormatError("Record modèle invalide : objet (dict) attendu")
    try:
        parsed = ModelRecord.model_validate(record)
    except ValidationError as exc:
        raise FormatError(
            "Record modèle invalide",
            details=exc.errors(include_url=False, include_context=False, include_input=False),
        ) from exc

    names = tuple(parsed.feature_names)
    created_at = parsed.metadata.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)

    return LogisticModel(
        feature_names=names,
        weights=tuple(parsed.weights),
        bias=parsed.bias,
        scaler=Scaler(
            feature_names=names,
            means=tuple(parsed.scaler.means),
            stds=tuple(parsed.scaler.stds),
        ),
        version=parsed.version,
        metadata=TrainingMetadata(
            iterations=parsed.metadata.iterations,
            final_loss=parsed.metadata.final_loss,
            l2=parsed.l2,
            learning_rate=parsed.metadata.learning_rate,
            converged=parsed.metadata.converged,
            n_samples=parsed.metadata.n_samples,
            created_at=created_at,
        ),
    )
