from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type

from fastapi import HTTPException

from creditrisk.ml.errors import (
    CreditRiskError,
    DegenerateFeatureError,
    EmptyOrSingleClassError,
    FormatError,
    InvalidValueError,
    ModelFileNotFoundError,
    ModelNotLoadedError,
    NonFiniteError,
    SchemaMismatchError,
    TrainingError,
)

"""
Core Errors.

Rôle (fonctionnel) :
- Standardise le format des erreurs renvoyées par l’API (payload homogène).
- Traduit les erreurs métier du moteur (creditrisk.ml.errors) en statut HTTP.
- Fournit une exception applicative (AppHTTPException) pour les erreurs propres à l’API.

Convention de réponse (exemple) :
{
  "error": {
    "code": "SCHEMA_MISMATCH",
    "message": "Features incompatibles : attendu 5, reçu 4",
    "status": 400,
    "request_id": "...",
    "timestamp": "...",
    "details": {"missing": ["income"], ...}
  }
}
"""

# Ordre : de la classe la plus spécifique à la plus générale
_STATUS_BY_ERROR: tuple[tuple[Type[CreditRiskError], int], ...] = (
    (ModelNotLoadedError, 503),
    (SchemaMismatchError, 400),
    (InvalidValueError, 400),
    (DegenerateFeatureError, 422),
    (EmptyOrSingleClassError, 422),
    (NonFiniteError, 422),
    (TrainingError, 422),
    (FormatError, 422),
    (ModelFileNotFoundError, 404),
)


def now_iso() -> str:
    """Timestamp ISO-8601 en UTC (utilisé dans toutes les erreurs)."""
    return datetime.now(timezone.utc).isoformat()


def error_payload(
    *,
    code: str,
    message: str,
    status: int,
    request_id: str,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    """Construit un payload d’erreur homogène pour l’API."""
    payload: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "status": status,
            "request_id": request_id,
            "timestamp": now_iso(),
        }
    }
    if details is not None:
        payload["error"]["details"] = details
    return payload


def status_for(exc: CreditRiskError) -> int:
    """Statut HTTP d’une erreur métier (500 si non répertoriée)."""
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


class AppHTTPException(HTTPException):
    """
    Exception applicative standardisée.

    Exemple :
        raise AppHTTPException(404, "JOB_NOT_FOUND", "Job introuvable")
    """

    def __init__(self, status_code: int, code: str, message: str, details: Any = None):
        super().__init__(status_code=status_code, detail={"code": code, "message": message, "details": details})
