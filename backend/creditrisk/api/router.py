from fastapi import APIRouter

from .health import router as health_router

from creditrisk.api.score import router as score_router
from creditrisk.api.admin import router as admin_router

"""
Router principal de l’API.

Rôle (fonctionnel) :
- Regroupe les routeurs (health, scoring, administration du modèle).
- Point d’entrée unique pour l’inclusion dans l’application FastAPI.
"""

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(score_router)
api_router.include_router(admin_router)
