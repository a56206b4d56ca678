from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple

from creditrisk.ml.features import FeatureVector
from creditrisk.ml.logistic import DEFAULT_THRESHOLD, LogisticModel, Outcome
from creditrisk.ml.model_registry import ModelRegistry

"""
Scoring Service.

Rôle (fonctionnel) :
- Contrat “requête” du moteur : valider -> standardiser -> scorer -> classer -> répondre.
- Emprunte le modèle actif au ModelRegistry (une seule lecture par requête) :
  toute la requête utilise le même modèle, même si un swap a lieu entre-temps.
- Lecture seule : aucune requête ne modifie d’état partagé, aucune ne bloque les autres.

Sortie :
- ScoreResult : probabilité de défaut + décision (approve/deny) + version du modèle
  + niveau de risque (LOW/MEDIUM/HIGH) + facteurs (contributions au logit les plus fortes).

Erreurs (locales à la requête) :
- ModelNotLoadedError : aucun modèle actif
- SchemaMismatchError : features manquantes / en trop (avant tout calcul)
- InvalidValueError : valeur non numérique, non finie ou hors de l’échelle du modèle
"""


def _clamp(value: float) -> float:
    # w_i·x_i peut dépasser le plus grand float (inf) même avec x_i fini
    return max(-sys.float_info.max, min(sys.float_info.max, value))


class Decision(str, Enum):
    APPROVE = "approve"
    DENY = "deny"


@dataclass(frozen=True)
class ScoreResult:
    """Résultat de scoring (jamais persisté par le cœur)."""
    probability: float          # 0..1, probabilité de défaut
    decision: Decision
    model_version: str
    risk_tier: str              # LOW / MEDIUM / HIGH
    threshold: float
    factors: List[Tuple[str, float]] = field(default_factory=list)
    request_id: Optional[str] = None


class ScoringService:
    """
    Service de scoring au-dessus du registry.

    Responsabilités :
    - Valider l’entrée contre le schéma du modèle actif
    - Appliquer le scaler embarqué dans le modèle
    - Calculer la probabilité et la décision (seuil configurable)
    """

    def __init__(
        self,
        registry: ModelRegistry,
        *,
        threshold: float = DEFAULT_THRESHOLD,
        risk_tier_medium: float = 0.3,
        risk_tier_high: float = 0.6,
        max_factors: int = 3,
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError("threshold doit être dans [0, 1]")
        if not 0.0 <= risk_tier_medium <= risk_tier_high <= 1.0:
            raise ValueError("bornes de risque attendues : 0 <= medium <= high <= 1")
        self.registry = registry
        self.threshold = threshold
        self.risk_tier_medium = risk_tier_medium
        self.risk_tier_high = risk_tier_high
        self.max_factors = max_factors

    def is_ready(self) -> bool:
        """True dès qu’un modèle valide est publié dans le registry."""
        return self.registry.is_loaded()

    def _risk_tier(self, probability: float) -> str:
        """Bucket simple pour l’UI (LOW / MEDIUM / HIGH)."""
        if probability >= self.risk_tier_high:
            return "HIGH"
        if probability >= self.risk_tier_medium:
            return "MEDIUM"
        return "LOW"

    def _factors(self, model: LogisticModel, scaled: FeatureVector) -> List[Tuple[str, float]]:
        """Features les plus influentes (|w_i·x_i| décroissant), bornées aux floats finis (JSON)."""
        contributions = model.contributions(scaled)
        ranked = sorted(contributions.items(), key=lambda kv: abs(kv[1]), reverse=True)
        return [(name, round(_clamp(value), 6)) for name, value in ranked[: self.max_factors]]

    def predict(self, raw: Mapping[str, Any], *, request_id: Optional[str] = None) -> ScoreResult:
        # 1) Modèle actif (une seule lecture : cohérent pour toute la requête)
        model = self.registry.current()

        # 2) Validation schéma + valeurs (avant tout calcul)
        features = FeatureVector.from_mapping(raw, model.feature_names)

        # 3) Standardisation (scaler du modèle) puis score
        scaled = model.scaler.transform(features)
        probability = model.score(scaled)

        # 4) Décision : POSITIVE = défaut prédit -> refus
        outcome = model.classify(probability, self.threshold)
        decision = Decision.DENY if outcome is Outcome.POSITIVE else Decision.APPROVE

        return ScoreResult(
            probability=probability,
            decision=decision,
            model_version=model.version,
            risk_tier=self._risk_tier(probability),
            threshold=self.threshold,
            factors=self._factors(model, scaled),
            request_id=request_id,
        )
