from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from creditrisk.api.deps import AdminAuthDep, get_registry, get_store, get_training_jobs
from creditrisk.core.errors import AppHTTPException
from creditrisk.ml.features import TrainingRow
from creditrisk.ml.model_registry import ModelRegistry
from creditrisk.ml.model_store import ModelStore
from creditrisk.schemas.training import (
    ModelActionOut,
    ModelInfoOut,
    ModelMetadataOut,
    ReloadRequest,
    TrainJobOut,
    TrainRequest,
)
from creditrisk.services.training_service import TrainingJob, TrainingJobManager

"""
API Administration.

Rôle (fonctionnel) :
- Informations sur le modèle actif (version, poids, métadonnées d’entraînement).
- Entraînement en tâche de fond : POST /admin/train -> 202 + job_id, suivi via GET /admin/train/{job_id}.
- Reload d’un modèle persisté (nommé ou le plus récent) et sauvegarde du modèle actif.

Garanties :
- Un reload invalide (FormatError) ou un entraînement en échec ne modifie jamais le modèle actif.
- Toutes les routes exigent la clé admin (si configurée).
"""

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[AdminAuthDep])
log = logging.getLogger("creditrisk.admin")


def _job_out(job: TrainingJob) -> TrainJobOut:
    return TrainJobOut(
        job_id=job.id,
        status=job.status,
        created_at=job.created_at,
        started_at=job.started_at,
        finished_at=job.finished_at,
        activate=job.activate,
        persist=job.persist,
        model_version=job.model_version,
        metrics=job.metrics,
        error=job.error,
    )


@router.get("/model", response_model=ModelInfoOut)
def model_info(registry: ModelRegistry = Depends(get_registry)):
    model = registry.current()
    meta = model.metadata
    return ModelInfoOut(
        version=model.version,
        generation=registry.generation,
        feature_names=list(model.feature_names),
        weights=list(model.weights),
        bias=model.bias,
        scaler={"means": list(model.scaler.means), "stds": list(model.scaler.stds)},
        metadata=ModelMetadataOut(
            iterations=meta.iterations,
            final_loss=meta.final_loss,
            l2=meta.l2,
            learning_rate=meta.learning_rate,
            converged=meta.converged,
            n_samples=meta.n_samples,
            created_at=meta.created_at,
        ),
    )


@router.post("/train", response_model=TrainJobOut, status_code=202)
def train(payload: TrainRequest, jobs: TrainingJobManager = Depends(get_training_jobs)):
    # Schéma fixé par la 1re ligne ; validation des valeurs par le moteur
    schema = tuple(payload.rows[0].features.keys())
    rows = [TrainingRow.from_mapping(r.features, r.label, schema) for r in payload.rows]

    job = jobs.submit(
        rows,
        payload.config,
        version_tag=payload.version_tag,
        activate=payload.activate,
        persist=payload.persist,
    )
    return _job_out(job)


@router.get("/train/{job_id}", response_model=TrainJobOut)
def train_status(job_id: str, jobs: TrainingJobManager = Depends(get_training_jobs)):
    job = jobs.get(job_id)
    if job is None:
        raise AppHTTPException(404, "JOB_NOT_FOUND", "Job d'entraînement introuvable", details={"job_id": job_id})
    return _job_out(job)


@router.post("/models/reload", response_model=ModelActionOut)
async def reload_model(
    payload: ReloadRequest,
    registry: ModelRegistry = Depends(get_registry),
    store: ModelStore = Depends(get_store),
):
    # Lecture disque hors event loop
    if payload.name:
        model = await run_in_threadpool(store.load, payload.name)
    else:
        model = await run_in_threadpool(store.load_latest)
        if model is None:
            raise AppHTTPException(404, "MODEL_NOT_FOUND", "Aucun modèle dans le dossier des modèles")

    previous = registry.swap(model)
    return ModelActionOut(
        ok=True,
        model_version=model.version,
        previous_version=previous.version if previous is not None else None,
    )


@router.post("/models/save", response_model=ModelActionOut)
async def save_model(
    registry: ModelRegistry = Depends(get_registry),
    store: ModelStore = Depends(get_store),
):
    model = registry.current()
    path = await run_in_threadpool(store.save, model)
    return ModelActionOut(ok=True, model_version=model.version, path=path.name)
