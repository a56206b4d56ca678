from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pandas as pd
from sklearn.metrics import accuracy_score, roc_auc_score
from sklearn.model_selection import train_test_split

BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_DIR))

from creditrisk.core.logging import setup_logging
from creditrisk.core.settings import settings
from creditrisk.ml import trainer
from creditrisk.ml.errors import CreditRiskError
from creditrisk.ml.features import TrainingRow
from creditrisk.ml.logistic import Outcome
from creditrisk.ml.model_store import ModelStore
from creditrisk.ml.trainer import TrainingConfig

"""
Script CLI: train_logreg

Rôle (fonctionnel) :
- Entraîne un modèle logistique à partir d’un CSV labellisé (colonne label + colonnes features).
- Split train/test stratifié (scikit-learn) : le modèle est ajusté sur le train,
  évalué sur le test (accuracy, ROC AUC) ; le Trainer lui-même ne fait aucune I/O.
- Exporte un bundle .joblib versionné dans le dossier des modèles (settings.MODELS_DIR) ;
  le runtime le chargera au prochain démarrage ou via POST /admin/models/reload.

Usage :
    python scripts/train_logreg.py data/applicants.csv --label default --version v2
"""


def _rows(df: pd.DataFrame, features: list[str], label: str) -> list[TrainingRow]:
    return [
        TrainingRow.from_mapping({name: float(r[name]) for name in features}, int(r[label]), features)
        for _, r in df.iterrows()
    ]


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("csv", help="CSV labellisé (une ligne par demandeur)")
    ap.add_argument("--label", default="default", help="Nom de la colonne label (0/1)")
    ap.add_argument("--version", default="v1", help="Tag de version (ex: v1, v2) pour le nom du modèle exporté")
    ap.add_argument("--test-size", type=float, default=0.25)
    ap.add_argument("--learning-rate", type=float, default=settings.TRAIN_LEARNING_RATE)
    ap.add_argument("--l2", type=float, default=settings.TRAIN_L2)
    ap.add_argument("--max-iterations", type=int, default=settings.TRAIN_MAX_ITERATIONS)
    ap.add_argument("--tolerance", type=float, default=settings.TRAIN_TOLERANCE)
    ap.add_argument("--models-dir", default=str(settings.MODELS_DIR))
    args = ap.parse_args()

    setup_logging(settings.LOG_LEVEL)

    df = pd.read_csv(args.csv)
    if df.empty:
        print("CSV vide : rien à entraîner.")
        return 1
    if args.label not in df.columns:
        print(f"Colonne label absente : {args.label}")
        return 1

    features = [c for c in df.columns if c != args.label]
    y = df[args.label].astype(int)

    # Split stratifié (répartition stable des classes)
    train_df, test_df = train_test_split(df, test_size=args.test_size, random_state=42, stratify=y)

    config = TrainingConfig(
        learning_rate=args.learning_rate,
        l2=args.l2,
        max_iterations=args.max_iterations,
        tolerance=args.tolerance,
    )

    try:
        model = trainer.fit(
            _rows(train_df, features, args.label),
            config,
            version=trainer.default_version(args.version),
        )
    except CreditRiskError as exc:
        print(f"Échec entraînement [{exc.code}] : {exc.message}")
        return 2

    # Évaluation hold-out
    probas = [model.predict_proba(row.features) for row in _rows(test_df, features, args.label)]
    y_test = test_df[args.label].astype(int).tolist()
    y_pred = [int(model.classify(p, settings.DECISION_THRESHOLD) is Outcome.POSITIVE) for p in probas]

    print("Version     :", model.version)
    print("Itérations  :", model.metadata.iterations, "(convergé)" if model.metadata.converged else "(max atteint)")
    print("Loss finale :", round(model.metadata.final_loss, 6))
    print("Accuracy    :", round(accuracy_score(y_test, y_pred), 4))
    print("ROC AUC     :", round(roc_auc_score(y_test, probas), 4))
    for name, w in zip(model.feature_names, model.weights):
        print(f"  {name:<22} {w:+.4f}")

    out_path = ModelStore(args.models_dir).save(model)
    print("OK - saved:", out_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
