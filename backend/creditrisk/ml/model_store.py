from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import joblib

from creditrisk.ml.errors import FormatError, ModelFileNotFoundError
from creditrisk.ml.logistic import LogisticModel
from creditrisk.ml.records import export_record, load_record

"""
ML Model Store.

Rôle (fonctionnel) :
- Persiste / relit les modèles sous forme de bundles .joblib dans le dossier des modèles.
- Bundle : dict { "record": <record exporté>, "meta": { "kind", "model_version" } }
  (le record est un dict de types simples, voir ml/records.py).
- Sélectionne le modèle “le plus récent” (par date de modification) pour le démarrage.

Conventions :
- Fichiers : <model_version>.joblib, ex : logreg_v1_20261019-141005-3f9a1c2e.joblib
- Les noms sont limités à un nom de fichier simple dans le dossier (pas de chemin).

Notes :
- joblib.load désérialise du pickle : le dossier des modèles doit rester sous contrôle
  de l’opérateur (endpoints d’admin protégés).
"""

log = logging.getLogger("creditrisk.model_store")

SUFFIX = ".joblib"


class ModelStore:
    """Stockage fichier des modèles (1 bundle joblib par version)."""

    def __init__(self, models_dir: Path | str) -> None:
        self.models_dir = Path(models_dir)

    def _path_for(self, name: str) -> Path:
        """Résout un nom de bundle en chemin du dossier ; refuse tout chemin."""
        if not name or Path(name).name != name or name in (".", ".."):
            raise ModelFileNotFoundError(f"Nom de modèle invalide : {name!r}")
        if not name.endswith(SUFFIX):
            name = f"{name}{SUFFIX}"
        return self.models_dir / name

    def save(self, model: LogisticModel) -> Path:
        """Écrit le bundle du modèle et retourne son chemin."""
        self.models_dir.mkdir(parents=True, exist_ok=True)
        path = self._path_for(model.version)
        bundle = {
            "record": export_record(model),
            "meta": {"kind": "logreg", "model_version": model.version},
        }
        joblib.dump(bundle, path)
        log.info("model saved", extra={"model_version": model.version})
        return path

    def load(self, name: str) -> LogisticModel:
        """Relit un bundle par nom (avec ou sans suffixe .joblib)."""
        path = self._path_for(name)
        if not path.is_file():
            raise ModelFileNotFoundError(f"Modèle introuvable : {path.name}")
        return self._load_path(path)

    def latest_path(self) -> Optional[Path]:
        """Bundle le plus récent (st_mtime) ou None."""
        if not self.models_dir.exists():
            return None
        files = sorted(self.models_dir.glob(f"*{SUFFIX}"), key=lambda p: p.stat().st_mtime, reverse=True)
        return files[0] if files else None

    def load_latest(self) -> Optional[LogisticModel]:
        """Charge le modèle le plus récent, None si le dossier est vide (mode dégradé)."""
        path = self.latest_path()
        if path is None:
            return None
        return self._load_path(path)

    def list_versions(self) -> list[str]:
        if not self.models_dir.exists():
            return []
        return sorted(p.stem for p in self.models_dir.glob(f"*{SUFFIX}"))

    def _load_path(self, path: Path) -> LogisticModel:
        try:
            bundle = joblib.load(path)
        except Exception as exc:
            raise FormatError(f"Bundle illisible : {path.name}", details={"reason": str(exc)}) from exc

        if not isinstance(bundle, dict) or "record" not in bundle:
            raise FormatError(f"Bundle sans record : {path.name}")
        return load_record(bundle["record"])
