from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from creditrisk import __version__
from creditrisk.api.deps import get_registry, get_scoring_service
from creditrisk.core.errors import now_iso
from creditrisk.core.settings import settings
from creditrisk.ml.model_registry import ModelRegistry
from creditrisk.services.scoring_service import ScoringService

"""
API Health.

Rôle (fonctionnel) :
- /health : liveness (l’API répond), toujours 200 ; version du service + horodatage UTC.
- /ready : readiness, 200 dès qu’un modèle valide est actif, 503 sinon (mode dégradé).
"""

router = APIRouter()


@router.get("/health")
def health(registry: ModelRegistry = Depends(get_registry)):
    return {
        "status": "ok",
        "version": __version__,
        "timestamp": now_iso(),
        "env": settings.ENV,
        "model_loaded": registry.is_loaded(),
    }


@router.get("/ready")
def ready(
    scoring: ScoringService = Depends(get_scoring_service),
    registry: ModelRegistry = Depends(get_registry),
):
    if not scoring.is_ready():
        return JSONResponse(status_code=503, content={"ready": False, "model_version": None})
    return {"ready": True, "model_version": registry.current().version}
