from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Optional, Sequence

from creditrisk.ml import trainer
from creditrisk.ml.errors import CreditRiskError
from creditrisk.ml.features import TrainingRow
from creditrisk.ml.model_registry import ModelRegistry
from creditrisk.ml.model_store import ModelStore
from creditrisk.ml.trainer import TrainingConfig

"""
Training Service (jobs d’entraînement en arrière-plan).

Rôle (fonctionnel) :
- Exécute l’entraînement (CPU-bound) hors du chemin des requêtes, sur un worker dédié
  (ThreadPoolExecutor à 1 thread) : le scoring concurrent n’est jamais affamé.
- Chaque job : Trainer.fit -> (optionnel) sauvegarde dans le ModelStore -> (optionnel) swap.
- Suivi des jobs par identifiant : pending / running / succeeded / failed.

Garanties :
- Le swap n’a lieu qu’après un modèle entièrement entraîné et validé :
  un échec (TrainingError, SchemaMismatchError…) ne touche jamais le registry.
- Un seul job à la fois (worker unique) : les ré-entraînements sont sérialisés.
"""

log = logging.getLogger("creditrisk.training")

FINISHED = ("succeeded", "failed")


@dataclass(frozen=True)
class TrainingJob:
    """Snapshot de l’état d’un job (copié à chaque transition)."""
    id: str
    status: str  # pending | running | succeeded | failed
    created_at: datetime
    activate: bool
    persist: bool
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    model_version: Optional[str] = None
    error: Optional[Dict[str, Any]] = None
    metrics: Dict[str, Any] = field(default_factory=dict)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TrainingJobManager:
    """
    Orchestration des entraînements en tâche de fond (worker unique).

    Mémoire bornée :
    - le Future d’un job est oublié dès que le job se termine ;
    - au plus `max_finished_jobs` jobs terminés sont conservés (les plus anciens sont oubliés),
      les jobs pending / running ne sont jamais oubliés.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        store: Optional[ModelStore] = None,
        *,
        default_config: Optional[TrainingConfig] = None,
        max_finished_jobs: int = 100,
    ) -> None:
        if max_finished_jobs < 1:
            raise ValueError("max_finished_jobs doit être >= 1")
        self.registry = registry
        self.store = store
        self.default_config = default_config or TrainingConfig()
        self.max_finished_jobs = max_finished_jobs
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="trainer")
        # Protège jobs + futures (jamais pris en même temps que le lock du registry)
        self._lock = Lock()
        self._jobs: OrderedDict[str, TrainingJob] = OrderedDict()
        self._futures: Dict[str, Future] = {}

    def _update(self, job_id: str, **changes: Any) -> TrainingJob:
        with self._lock:
            job = replace(self._jobs[job_id], **changes)
            self._jobs[job_id] = job
        return job

    def _finish(self, job_id: str, **changes: Any) -> TrainingJob:
        """Statut final : le Future n’est plus référencé, les vieux jobs terminés sont purgés."""
        with self._lock:
            job = replace(self._jobs[job_id], finished_at=_now(), **changes)
            self._jobs[job_id] = job
            self._futures.pop(job_id, None)
            self._prune()
        return job

    def _prune(self) -> None:
        # appelé sous self._lock ; ordre d’insertion = ordre de soumission
        finished = [jid for jid, job in self._jobs.items() if job.status in FINISHED]
        for jid in finished[: max(0, len(finished) - self.max_finished_jobs)]:
            del self._jobs[jid]

    def submit(
        self,
        rows: Sequence[TrainingRow],
        config: Optional[TrainingConfig] = None,
        *,
        version_tag: str = "v1",
        activate: bool = True,
        persist: bool = True,
    ) -> TrainingJob:
        """Planifie un entraînement et retourne immédiatement le job (status=pending)."""
        job = TrainingJob(
            id=uuid.uuid4().hex,
            status="pending",
            created_at=_now(),
            activate=activate,
            persist=persist and self.store is not None,
        )
        cfg = config or self.default_config

        # Le worker commence par _update (même lock) : le Future est enregistré avant
        # que le job puisse se terminer et le retirer.
        with self._lock:
            self._jobs[job.id] = job
            self._futures[job.id] = self._executor.submit(self._run, job.id, list(rows), cfg, version_tag)

        log.info("training job queued", extra={"job_id": job.id, "n_samples": len(rows)})
        return job

    def _run(self, job_id: str, rows: list[TrainingRow], cfg: TrainingConfig, version_tag: str) -> TrainingJob:
        job = self._update(job_id, status="running", started_at=_now())
        try:
            model = trainer.fit(rows, cfg, version=trainer.default_version(version_tag))
            if job.persist:
                self.store.save(model)
            if job.activate:
                self.registry.swap(model)
        except CreditRiskError as exc:
            log.warning("training job failed: %s", exc.message, extra={"job_id": job_id})
            return self._finish(
                job_id,
                status="failed",
                error={"code": exc.code, "message": exc.message, "details": exc.details},
            )
        except Exception as exc:
            log.exception("training job crashed", extra={"job_id": job_id})
            return self._finish(
                job_id,
                status="failed",
                error={"code": "INTERNAL_ERROR", "message": str(exc), "details": None},
            )

        meta = model.metadata
        log.info("training job succeeded", extra={"job_id": job_id, "model_version": model.version})
        return self._finish(
            job_id,
            status="succeeded",
            model_version=model.version,
            metrics={
                "iterations": meta.iterations,
                "final_loss": meta.final_loss,
                "converged": meta.converged,
                "n_samples": meta.n_samples,
            },
        )

    def get(self, job_id: str) -> Optional[TrainingJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def in_flight(self) -> int:
        """Nombre de jobs pending / running (Futures encore référencés)."""
        with self._lock:
            return len(self._futures)

    def wait(self, job_id: str, timeout: Optional[float] = None) -> TrainingJob:
        """Bloque jusqu’à la fin du job (scripts / tests) ; KeyError si le job est inconnu ou purgé."""
        with self._lock:
            future = self._futures.get(job_id)
            job = self._jobs.get(job_id)
        if future is not None:
            return future.result(timeout=timeout)
        if job is None:
            raise KeyError(job_id)
        return job

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)
