from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

"""
Schemas Scoring (Pydantic).

Rôle (fonctionnel) :
- Contrat HTTP de /predict.
- L’enveloppe est stricte (extra="forbid") ; le contenu de `features` est volontairement
  typé `Any` : la conformité au schéma du modèle actif et la validité des valeurs sont
  vérifiées par le moteur (SchemaMismatchError / InvalidValueError), pas par Pydantic.
"""


class PredictRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    features: Dict[str, Any]
    request_id: Optional[str] = Field(default=None, max_length=128)


class FactorOut(BaseModel):
    feature: str
    contribution: float


class PredictResponse(BaseModel):
    probability: float = Field(ge=0.0, le=1.0)
    decision: str  # approve | deny
    model_version: str
    risk_tier: str  # LOW | MEDIUM | HIGH
    threshold: float
    factors: List[FactorOut]
    request_id: Optional[str] = None
