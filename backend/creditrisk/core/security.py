from __future__ import annotations

import logging
import secrets
from typing import List, Optional

from fastapi import Request

from creditrisk.core.settings import settings
from creditrisk.core.errors import AppHTTPException

"""
Core Security (clé API admin).

Rôle (fonctionnel) :
- Protège les routes d’administration (/admin/* : entraînement, reload, sauvegarde du modèle).
- Headers acceptés : `Authorization: Bearer <clé>` ou `X-API-Key: <clé>`.

Rotation des clés :
- API_KEY peut contenir plusieurs clés séparées par des virgules ("nouvelle,ancienne") :
  toutes sont acceptées pendant la rotation, puis l’ancienne est retirée de la config.

Comportement :
- Au moins une clé configurée : une clé valide est requise (401 sinon, tentative journalisée).
- Aucune clé et ENV != prod : bypass (dev / local).
- Aucune clé et ENV = prod : erreur 500 (configuration serveur invalide).

Notes :
- /predict, /health et /ready restent publics.
"""

log = logging.getLogger("creditrisk.security")


def admin_keys() -> List[str]:
    """Clés admin actives (API_KEY, séparées par des virgules)."""
    return [k.strip() for k in (settings.API_KEY or "").split(",") if k.strip()]


def _extract_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization")
    if auth:
        parts = auth.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1].strip()

    x_api_key = request.headers.get("x-api-key")
    if x_api_key:
        return x_api_key.strip()

    return None


def _matches(token: str, keys: List[str]) -> bool:
    # compare_digest sur chaque clé, sans court-circuit
    results = [secrets.compare_digest(token.encode(), key.encode()) for key in keys]
    return any(results)


async def require_admin_key(request: Request) -> None:
    """Dépendance FastAPI : lève AppHTTPException si la clé admin est absente / invalide."""
    keys = admin_keys()

    if not keys:
        if str(settings.ENV).lower() == "prod":
            raise AppHTTPException(500, "SERVER_MISCONFIG", "API_KEY manquante côté serveur")
        return

    token = _extract_token(request)
    if not token or not _matches(token, keys):
        log.warning(
            "admin access denied (%s)",
            "missing key" if not token else "invalid key",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else None,
            },
        )
        raise AppHTTPException(401, "UNAUTHORIZED", "Clé API invalide ou manquante")
