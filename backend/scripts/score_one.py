from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_DIR))

from creditrisk.core.settings import settings
from creditrisk.ml.errors import CreditRiskError
from creditrisk.ml.model_registry import ModelRegistry
from creditrisk.ml.model_store import ModelStore
from creditrisk.services.scoring_service import ScoringService

"""
Script CLI: score_one

Rôle (fonctionnel) :
- Charge le modèle le plus récent (ou un bundle nommé) depuis le dossier des modèles.
- Score un demandeur passé en JSON via le même ScoringService que l’API.
- Affiche probabilité, décision, niveau de risque et facteurs principaux.

Usage typique :
- Debug local / vérification rapide d’un bundle sans démarrer l’API.
    python scripts/score_one.py '{"income_k": 42, "debt_to_income": 0.4, ...}'
"""


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("features", help="Features du demandeur en JSON (objet nom -> valeur)")
    ap.add_argument("--model", default=None, help="Nom du bundle (défaut : le plus récent)")
    ap.add_argument("--models-dir", default=str(settings.MODELS_DIR))
    args = ap.parse_args()

    store = ModelStore(args.models_dir)
    try:
        model = store.load(args.model) if args.model else store.load_latest()
    except CreditRiskError as exc:
        print(f"Chargement impossible [{exc.code}] : {exc.message}")
        return 1
    if model is None:
        print("Aucun modèle dans", store.models_dir)
        return 1

    scoring = ScoringService(ModelRegistry(model), threshold=settings.DECISION_THRESHOLD)
    try:
        res = scoring.predict(json.loads(args.features))
    except CreditRiskError as exc:
        print(f"Requête rejetée [{exc.code}] : {exc.message}")
        if exc.details:
            print("Details:", exc.details)
        return 2

    print("Model:", res.model_version)
    print("Probability:", round(res.probability, 4), res.decision.value, res.risk_tier)
    print("Factors:", res.factors)
    return 0


if __name__ == "__main__":
    sys.exit(main())
