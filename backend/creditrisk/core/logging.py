from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

from .request_id import get_request_id

"""
Core Logging.

Rôle (fonctionnel) :
- Une ligne JSON par événement, pour l’API, les jobs d’entraînement et uvicorn.
- Chaque ligne porte le request_id courant (ContextVar), "-" hors requête (jobs, scripts).
- Les extras passés via `extra={...}` sont repris s’ils sont connus :
  - HTTP (à plat) : method, path, status_code, duration_ms, client_ip
  - modèle / entraînement (regroupés sous "model") : version, previous_version, job_id,
    iterations, final_loss, converged, n_samples

Exemple :
{"ts": "...", "level": "INFO", "logger": "creditrisk.registry", "request_id": "-",
 "msg": "model swapped (generation 2)", "model": {"version": "logreg_v1_...", "previous_version": "..."}}
"""

HTTP_FIELDS = ("method", "path", "status_code", "duration_ms", "client_ip")

# attribut du LogRecord -> clé dans le bloc "model"
MODEL_FIELDS = {
    "model_version": "version",
    "previous_version": "previous_version",
    "job_id": "job_id",
    "iterations": "iterations",
    "final_loss": "final_loss",
    "converged": "converged",
    "n_samples": "n_samples",
}


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class JsonFormatter(logging.Formatter):
    """LogRecord -> JSON (les valeurs non sérialisables passent par str())."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", "-"),
            "msg": record.getMessage(),
        }

        for key in HTTP_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)

        model = {out: getattr(record, attr) for attr, out in MODEL_FIELDS.items() if hasattr(record, attr)}
        if model:
            payload["model"] = model

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """
    Installe le handler JSON sur le root logger (remplace les handlers existants,
    ex : rechargement uvicorn --reload) et y raccorde les loggers uvicorn.
    """
    lvl = level.upper()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(lvl)

    # uvicorn installe ses propres handlers : on les retire et on propage vers le root
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(lvl)
