from __future__ import annotations

import uuid
from contextvars import ContextVar

"""
Core Request ID.

Rôle (fonctionnel) :
- Identifiant de requête (request_id) stocké dans un ContextVar, pour corréler logs et erreurs.
- Sources, par priorité :
  - header entrant X-Request-Id,
  - champ `request_id` du payload /predict (si aucun header),
  - UUID généré.

Notes :
- ContextVar est adapté à l’async (FastAPI) : chaque requête garde son propre request_id.
"""

MAX_REQUEST_ID_LEN = 128

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_request_id(rid: str | None) -> None:
    _request_id.set(rid)


def get_request_id() -> str | None:
    return _request_id.get()


def ensure_request_id(incoming: str | None = None) -> str:
    """Réutilise le request_id entrant (nettoyé, tronqué à 128 caractères) ou génère un UUID."""
    rid = (incoming or "").strip()[:MAX_REQUEST_ID_LEN] or str(uuid.uuid4())
    set_request_id(rid)
    return rid
