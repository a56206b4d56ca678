from __future__ import annotations

import time
import uuid
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from creditrisk.api.router import api_router
from creditrisk.core.settings import settings
from creditrisk.core.logging import setup_logging
from creditrisk.core.errors import error_payload, status_for, AppHTTPException
from creditrisk.core.request_id import set_request_id, get_request_id, ensure_request_id
from creditrisk.ml.errors import CreditRiskError
from creditrisk.ml.model_registry import ModelRegistry
from creditrisk.ml.model_store import ModelStore
from creditrisk.services.scoring_service import ScoringService
from creditrisk.services.training_service import TrainingJobManager

"""
Application FastAPI (entrypoint).

Rôle (fonctionnel) :
- Assemble le service : registry du modèle actif, store des modèles, scoring, jobs d’entraînement
  (accessibles via app.state, injectés dans les routes par api/deps.py).
- Au démarrage : charge le modèle le plus récent du dossier des modèles (si présent) ;
  sinon l’API démarre en mode dégradé (/ready = 503, /predict = 503 MODEL_NOT_LOADED).
- Centralise l’observabilité :
  - request_id propagé (X-Request-Id)
  - logs structurés JSON (timing, status, client_ip)
  - seuil de “slow request”
- Uniformise les erreurs côté client (format error_payload).

Ce fichier ne contient pas de logique métier :
- Le moteur est dans creditrisk.ml, les use-cases dans creditrisk.services, les routes dans creditrisk.api.
"""


class UTF8JSONResponse(JSONResponse):
    """Réponse JSON avec charset UTF-8 explicite (cohérent sur tous les endpoints)."""
    media_type = "application/json; charset=utf-8"


setup_logging(settings.LOG_LEVEL)

log = logging.getLogger("creditrisk")
http_log = logging.getLogger("creditrisk.http")

SLOW_MS = int(settings.SLOW_REQUEST_MS)


def _split_origins(value: str) -> list[str]:
    """Parse une liste d’origines CORS depuis une string 'a,b,c'."""
    if not value:
        return []
    return [o.strip() for o in value.split(",") if o.strip()]


def _rid(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or str(uuid.uuid4())


def create_app(
    registry: Optional[ModelRegistry] = None,
    store: Optional[ModelStore] = None,
    *,
    load_on_startup: Optional[bool] = None,
) -> FastAPI:
    """
    Construit l’application.

    - registry / store injectables (tests, intégration) ; défauts depuis settings.
    - load_on_startup : charge le dernier bundle du store si le registry est vide.
    """
    registry = registry or ModelRegistry()
    store = store or ModelStore(settings.MODELS_DIR)
    if load_on_startup is None:
        load_on_startup = settings.LOAD_MODEL_ON_STARTUP

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if load_on_startup and not registry.is_loaded():
            try:
                model = store.load_latest()
            except CreditRiskError as exc:
                # Bundle corrompu : on démarre quand même, en mode dégradé
                log.error("startup model load failed: %s", exc.message)
            else:
                if model is None:
                    log.warning("no model found in %s, starting in degraded mode", store.models_dir)
                else:
                    registry.swap(model)
        yield
        app.state.training_jobs.shutdown(wait=False)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        default_response_class=UTF8JSONResponse,
        lifespan=lifespan,
    )

    app.state.registry = registry
    app.state.store = store
    app.state.scoring = ScoringService(
        registry,
        threshold=settings.DECISION_THRESHOLD,
        risk_tier_medium=settings.RISK_TIER_MEDIUM,
        risk_tier_high=settings.RISK_TIER_HIGH,
    )
    app.state.training_jobs = TrainingJobManager(
        registry,
        store,
        default_config=settings.training_config(),
        max_finished_jobs=settings.TRAINING_JOBS_KEPT,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_split_origins(settings.CORS_ORIGINS),
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key", "X-Request-Id"],
    )

    app.include_router(api_router)

    # --- Middleware observabilité : request_id + timing + logs structurés ---
    @app.middleware("http")
    async def request_observability(request: Request, call_next):
        rid = ensure_request_id(request.headers.get("X-Request-Id"))
        request.state.request_id = rid

        start = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = int((time.perf_counter() - start) * 1000)
            # /predict peut remplacer le request_id (champ du payload)
            rid = getattr(request.state, "request_id", rid)
            if response is not None:
                response.headers["X-Request-Id"] = rid

            level = logging.WARNING if duration_ms >= SLOW_MS else logging.INFO
            http_log.log(
                level,
                "request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": getattr(response, "status_code", None),
                    "duration_ms": duration_ms,
                    "client_ip": request.client.host if request.client else None,
                },
            )
            set_request_id(None)

    # --- Error handlers : format standard, pas de stacktrace côté client ---
    @app.exception_handler(CreditRiskError)
    async def domain_error_handler(request: Request, exc: CreditRiskError):
        """Erreurs métier du moteur -> statut HTTP + payload standard."""
        status = status_for(exc)
        return UTF8JSONResponse(
            status_code=status,
            content=error_payload(
                code=exc.code,
                message=exc.message,
                status=status,
                request_id=_rid(request),
                details=exc.details,
            ),
        )

    @app.exception_handler(AppHTTPException)
    async def app_http_exception_handler(request: Request, exc: AppHTTPException):
        detail = exc.detail if isinstance(exc.detail, dict) else {}
        return UTF8JSONResponse(
            status_code=exc.status_code,
            content=error_payload(
                code=str(detail.get("code", "HTTP_ERROR")),
                message=str(detail.get("message", "Erreur HTTP")),
                status=exc.status_code,
                request_id=_rid(request),
                details=detail.get("details", None),
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Erreurs HTTP natives (404, 405, etc.) -> payload standard."""
        code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
        return UTF8JSONResponse(
            status_code=exc.status_code,
            content=error_payload(code=code, message=str(exc.detail), status=exc.status_code, request_id=_rid(request)),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Erreurs de validation Pydantic -> 422 + details=exc.errors()."""
        return UTF8JSONResponse(
            status_code=422,
            content=error_payload(
                code="VALIDATION_ERROR",
                message="Requête invalide",
                status=422,
                request_id=_rid(request),
                details=exc.errors(),
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Fallback : toute exception non gérée -> 500 + log serveur."""
        log.exception("Unhandled error: %s", exc)
        return UTF8JSONResponse(
            status_code=500,
            content=error_payload(
                code="INTERNAL_ERROR",
                message="Erreur interne du serveur",
                status=500,
                request_id=_rid(request),
            ),
        )

    return app


app = create_app()
