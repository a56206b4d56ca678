from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Iterator, Mapping, Sequence, Tuple

from creditrisk.ml.errors import InvalidValueError, SchemaMismatchError

"""
ML Feature Vector.

Rôle (fonctionnel) :
- Représente un demandeur sous forme de vecteur numérique nommé (FeatureVector).
- Garantit la cohérence entre entraînement et inférence : l’ordre des valeurs est toujours
  celui du schéma déclaré par le modèle, quel que soit l’ordre des clés reçues.
- Valide l’entrée brute (mapping nom -> valeur) :
  - mêmes noms que le schéma (ni manquant, ni en trop) -> sinon SchemaMismatchError
  - valeurs numériques finies (pas de bool, pas de str, pas de NaN/inf) -> sinon InvalidValueError

Notes :
- Toute évolution de l’ordre des features doit être versionnée (elle change le modèle).
"""


def _as_finite_float(name: str, value: Any) -> float:
    """Convertit une valeur brute en float fini (lève InvalidValueError sinon)."""
    # bool est un int en Python : on le refuse explicitement
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidValueError(name, value)
    x = float(value)
    if not math.isfinite(x):
        raise InvalidValueError(name, value)
    return x


@dataclass(frozen=True)
class FeatureVector:
    """Vecteur de features validé (noms et valeurs dans l’ordre du schéma)."""
    names: Tuple[str, ...]
    values: Tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.names) != len(self.values):
            raise ValueError("names et values doivent avoir la même longueur")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], schema: Sequence[str]) -> "FeatureVector":
        """
        Construit un FeatureVector depuis un mapping brut, ordonné selon `schema`.

        Le contrôle de schéma passe avant le contrôle des valeurs : une requête avec des
        features manquantes ou en trop n’atteint jamais le calcul.
        """
        expected = tuple(schema)
        received = tuple(raw.keys())
        if set(received) != set(expected) or len(received) != len(expected):
            raise SchemaMismatchError(expected, received)

        values = tuple(_as_finite_float(name, raw[name]) for name in expected)
        return cls(names=expected, values=values)

    def conform_to(self, schema: Sequence[str]) -> "FeatureVector":
        """Réordonne le vecteur selon `schema` (mêmes noms exigés)."""
        expected = tuple(schema)
        if self.names == expected:
            return self
        return FeatureVector.from_mapping(self.as_dict(), expected)

    def as_dict(self) -> Dict[str, float]:
        return dict(zip(self.names, self.values))

    def __iter__(self) -> Iterator[float]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class TrainingRow:
    """Exemple labellisé : features + label binaire (1 = défaut)."""
    features: FeatureVector
    label: int

    def __post_init__(self) -> None:
        if isinstance(self.label, bool) or self.label not in (0, 1):
            raise InvalidValueError("label", self.label)
        # numpy.int64 / 1.0 -> int
        object.__setattr__(self, "label", int(self.label))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], label: Any, schema: Sequence[str] | None = None) -> "TrainingRow":
        """Construit une ligne ; sans schéma explicite, l’ordre des clés reçues fait foi."""
        names = tuple(schema) if schema is not None else tuple(raw.keys())
        return cls(features=FeatureVector.from_mapping(raw, names), label=label)
