# backend/scripts/make_dataset.py
from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np
import pandas as pd

BACKEND_DIR = Path(__file__).resolve().parents[1]

"""
Script CLI: make_dataset

Rôle (fonctionnel) :
- Génère un jeu de demandeurs synthétique (CSV) pour la démo / les tests de bout en bout.
- Chaque ligne : features numériques “crédibles” + label `default` (1 = défaut).
- Le label est tiré d’un modèle logistique caché (vrais coefficients ci-dessous) + bruit :
  le Trainer doit retrouver des signes de poids cohérents.

Usage :
    python scripts/make_dataset.py --n 5000 --out data/applicants.csv
"""

FEATURES = (
    "income_k",             # revenu annuel (k€)
    "debt_to_income",       # ratio dette / revenu
    "credit_utilization",   # utilisation des lignes de crédit (0..1+)
    "months_employed",      # ancienneté emploi (mois)
    "delinquencies_2y",     # incidents de paiement sur 2 ans
    "loan_amount_k",        # montant demandé (k€)
)

# Coefficients “vérité terrain” (sur features standardisées)
TRUE_WEIGHTS = {
    "income_k": -0.8,
    "debt_to_income": 1.1,
    "credit_utilization": 0.9,
    "months_employed": -0.5,
    "delinquencies_2y": 1.3,
    "loan_amount_k": 0.4,
}
TRUE_BIAS = -1.2


def generate(n: int, seed: int) -> pd.DataFrame:
    rng = np.random.default_rng(seed)

    df = pd.DataFrame(
        {
            "income_k": np.clip(rng.lognormal(mean=3.7, sigma=0.45, size=n), 8, 400).round(1),
            "debt_to_income": np.clip(rng.normal(0.32, 0.14, size=n), 0.0, 1.5).round(3),
            "credit_utilization": np.clip(rng.beta(2.0, 3.5, size=n) * 1.2, 0.0, 1.2).round(3),
            "months_employed": rng.integers(0, 360, size=n),
            "delinquencies_2y": rng.poisson(0.35, size=n),
            "loan_amount_k": np.clip(rng.gamma(2.2, 6.0, size=n), 1, 150).round(1),
        }
    )

    # Logit caché sur features standardisées + bruit
    z = np.full(n, TRUE_BIAS)
    for name, w in TRUE_WEIGHTS.items():
        col = df[name].astype(float)
        z += w * (col - col.mean()) / col.std(ddof=0)
    z += rng.normal(0.0, 0.5, size=n)

    p = 1.0 / (1.0 + np.exp(-z))
    df["default"] = (rng.random(n) < p).astype(int)
    return df


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--n", type=int, default=5000, help="Nombre de demandeurs")
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--out", default=str(BACKEND_DIR / "data" / "applicants.csv"))
    args = ap.parse_args()

    df = generate(args.n, args.seed)

    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False)

    rate = float(df["default"].mean())
    print(f"OK - {len(df)} lignes, taux de défaut {rate:.1%} -> {out}")


if __name__ == "__main__":
    main()
