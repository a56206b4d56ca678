from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from creditrisk.api.deps import get_scoring_service
from creditrisk.core.request_id import set_request_id
from creditrisk.schemas.scoring import FactorOut, PredictRequest, PredictResponse
from creditrisk.services.scoring_service import ScoringService

"""
API Scoring.

Rôle (fonctionnel) :
- POST /predict : probabilité de défaut + décision pour un demandeur.
- Le request_id du payload est utilisé pour la traçabilité si aucun header X-Request-Id n’a été fourni.

Notes :
- Route synchrone : FastAPI l’exécute dans son threadpool, les requêtes sont scorées en parallèle.
- Les erreurs métier (SchemaMismatchError, InvalidValueError, ModelNotLoadedError) remontent
  telles quelles et sont converties en payload d’erreur standard par main.py.
"""

router = APIRouter(tags=["score"])


@router.post("/predict", response_model=PredictResponse)
def predict(
    payload: PredictRequest,
    request: Request,
    scoring: ScoringService = Depends(get_scoring_service),
):
    rid = getattr(request.state, "request_id", None)
    if payload.request_id and not request.headers.get("X-Request-Id"):
        rid = payload.request_id.strip() or rid
        request.state.request_id = rid
        set_request_id(rid)

    res = scoring.predict(payload.features, request_id=rid)

    return PredictResponse(
        probability=res.probability,
        decision=res.decision.value,
        model_version=res.model_version,
        risk_tier=res.risk_tier,
        threshold=res.threshold,
        factors=[FactorOut(feature=name, contribution=value) for name, value in res.factors],
        request_id=res.request_id,
    )
