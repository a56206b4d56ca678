from __future__ import annotations

from typing import Any, Optional

"""
ML Errors.

Rôle (fonctionnel) :
- Définit la taxonomie d’erreurs du moteur de scoring (indépendante du transport HTTP).
- Chaque erreur porte un code stable, un message lisible et des détails optionnels,
  repris tels quels par la couche API (core/errors.py) pour construire le payload d’erreur.

Familles :
- Registry : ModelNotLoadedError (aucun modèle actif).
- Entrée client : SchemaMismatchError, InvalidValueError (pas de retry).
- Entraînement : TrainingError et ses variantes (données ou hyper-paramètres défectueux).
- Persistance : FormatError (record corrompu), ModelFileNotFoundError (bundle absent).
"""


class CreditRiskError(Exception):
    """Erreur métier de base (code stable + message + détails)."""

    code: str = "CREDIT_RISK_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ModelNotLoadedError(CreditRiskError):
    code = "MODEL_NOT_LOADED"

    def __init__(self, message: str = "Aucun modèle actif : entraîner ou recharger un modèle d'abord") -> None:
        super().__init__(message)


class SchemaMismatchError(CreditRiskError):
    """Features manquantes / en trop par rapport au schéma déclaré du modèle."""

    code = "SCHEMA_MISMATCH"

    def __init__(self, expected: tuple[str, ...], received: tuple[str, ...]) -> None:
        missing = [name for name in expected if name not in received]
        unexpected = [name for name in received if name not in expected]
        super().__init__(
            f"Features incompatibles : attendu {len(expected)}, reçu {len(received)}",
            details={"expected": list(expected), "missing": missing, "unexpected": unexpected},
        )
        self.missing = missing
        self.unexpected = unexpected


class InvalidValueError(CreditRiskError):
    code = "INVALID_VALUE"

    def __init__(self, feature: str, value: Any, reason: str = "nombre fini attendu") -> None:
        super().__init__(
            f"Valeur invalide pour la feature '{feature}' ({reason})",
            details={"feature": feature, "value": repr(value)},
        )
        self.feature = feature


class TrainingError(CreditRiskError):
    """Échec d’entraînement : jamais ignoré, remonté à l’initiateur."""

    code = "TRAINING_FAILED"


class DegenerateFeatureError(TrainingError):
    code = "DEGENERATE_FEATURE"

    def __init__(self, features: list[str]) -> None:
        super().__init__(
            f"Variance nulle sur {len(features)} feature(s) : {', '.join(features)}",
            details={"features": features},
        )
        self.features = features


class EmptyOrSingleClassError(TrainingError):
    code = "EMPTY_OR_SINGLE_CLASS"


class NonFiniteError(TrainingError):
    code = "NON_FINITE"


class FormatError(CreditRiskError):
    code = "MODEL_FORMAT_ERROR"


class ModelFileNotFoundError(CreditRiskError):
    code = "MODEL_NOT_FOUND"
