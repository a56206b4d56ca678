from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from creditrisk.ml.trainer import TrainingConfig

"""
Schemas Administration (Pydantic).

Rôle (fonctionnel) :
- Contrat HTTP des routes /admin/* : entraînement en tâche de fond, suivi des jobs,
  informations sur le modèle actif, reload / sauvegarde.

Notes :
- Les lignes d’entraînement gardent leurs features en `Dict[str, Any]` : la validation
  numérique est faite par le moteur (mêmes règles que /predict).
- `config` reprend directement TrainingConfig (valeurs finies, bornes) ; absent = défauts settings.
"""


class TrainingRowIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    features: Dict[str, Any]
    label: Literal[0, 1]


class TrainRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rows: List[TrainingRowIn] = Field(min_length=1)
    config: Optional[TrainingConfig] = None
    version_tag: str = Field(default="v1", min_length=1, max_length=32, pattern=r"^[A-Za-z0-9_-]+$")
    activate: bool = True
    persist: bool = True


class TrainJobOut(BaseModel):
    job_id: str
    status: str
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    activate: bool
    persist: bool
    model_version: Optional[str] = None
    metrics: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[Dict[str, Any]] = None


class ModelMetadataOut(BaseModel):
    iterations: int
    final_loss: float
    l2: float
    learning_rate: float
    converged: bool
    n_samples: int
    created_at: datetime


class ModelInfoOut(BaseModel):
    version: str
    generation: int
    feature_names: List[str]
    weights: List[float]
    bias: float
    scaler: Dict[str, List[float]]
    metadata: ModelMetadataOut


class ReloadRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Nom du bundle dans le dossier des modèles ; absent = le plus récent
    name: Optional[str] = Field(default=None, max_length=200)


class ModelActionOut(BaseModel):
    ok: bool
    model_version: str
    previous_version: Optional[str] = None
    path: Optional[str] = None
