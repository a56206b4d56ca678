from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Optional

from creditrisk.ml.errors import ModelNotLoadedError
from creditrisk.ml.logistic import LogisticModel
from creditrisk.ml.records import load_record

"""
ML Model Registry.

Rôle (fonctionnel) :
- Détient le modèle “actif” (un seul à la fois) derrière une référence publiée atomiquement.
- current() : lecture sans verrou de la référence -> modèle complet, jamais partiellement mis à jour.
- swap(model) : remplace le modèle actif ; les swaps concurrents sont sérialisés par un Lock.
- reload(record) : valide un record (load_record) puis swap ; en cas de FormatError,
  le modèle actif reste en place.

Garanties :
- Linéarisable : chaque current() observe l’ancien OU le nouveau modèle (LogisticModel est immuable,
  la publication est une seule affectation de référence).
- Un appel de scoring qui a déjà obtenu le modèle continue avec lui jusqu’au bout.
- Un seul verrou dans tout le cœur : pas d’interblocage possible.
"""

log = logging.getLogger("creditrisk.registry")


class ModelRegistry:
    """Handle concurrent sur le modèle actif (publication atomique)."""

    def __init__(self, model: Optional[LogisticModel] = None) -> None:
        # Verrou écrivains uniquement : les lecteurs ne le prennent jamais
        self._swap_lock = Lock()
        self._active: Optional[LogisticModel] = model
        self._generation = 1 if model is not None else 0

    def current(self) -> LogisticModel:
        """Retourne le modèle actif ; ModelNotLoadedError si aucun modèle n’a été publié."""
        model = self._active
        if model is None:
            raise ModelNotLoadedError()
        return model

    def is_loaded(self) -> bool:
        return self._active is not None

    @property
    def generation(self) -> int:
        """Nombre de publications depuis la création (0 = vide)."""
        return self._generation

    def swap(self, new_model: LogisticModel) -> Optional[LogisticModel]:
        """Publie `new_model` et retourne le modèle remplacé (ou None)."""
        if not isinstance(new_model, LogisticModel):
            raise TypeError(f"LogisticModel attendu, reçu {type(new_model).__name__}")

        with self._swap_lock:
            previous = self._active
            self._active = new_model
            self._generation += 1
            generation = self._generation

        log.info(
            "model swapped (generation %s)",
            generation,
            extra={
                "model_version": new_model.version,
                "previous_version": previous.version if previous is not None else None,
            },
        )
        return previous

    def reload(self, record: Any) -> Optional[LogisticModel]:
        """Valide puis publie un record ; FormatError laisse le registry intact."""
        model = load_record(record)
        return self.swap(model)
