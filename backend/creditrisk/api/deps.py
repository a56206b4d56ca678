from __future__ import annotations

from fastapi import Depends, Request

from creditrisk.core.security import require_admin_key
from creditrisk.ml.model_registry import ModelRegistry
from creditrisk.ml.model_store import ModelStore
from creditrisk.services.scoring_service import ScoringService
from creditrisk.services.training_service import TrainingJobManager

"""
Dépendances API.

Rôle (fonctionnel) :
- Expose aux routes les objets partagés créés au démarrage (app.state) :
  registry, scoring service, store, gestionnaire de jobs d’entraînement.
- Fournit la protection des routes d’administration (clé API).
"""


def get_registry(request: Request) -> ModelRegistry:
    return request.app.state.registry


def get_scoring_service(request: Request) -> ScoringService:
    return request.app.state.scoring


def get_store(request: Request) -> ModelStore:
    return request.app.state.store


def get_training_jobs(request: Request) -> TrainingJobManager:
    return request.app.state.training_jobs


# Dépendance prête à l’emploi pour protéger un router
AdminAuthDep = Depends(require_admin_key)
