"""
creditrisk

Package racine du service de scoring de risque crédit.

Organisation (haute-level) :
- creditrisk.api      : routes FastAPI (contrats HTTP, dépendances)
- creditrisk.core     : briques transverses (settings, errors, logs, sécurité)
- creditrisk.schemas  : schémas Pydantic (entrées/sorties API)
- creditrisk.services : use-cases (scoring, entraînement en tâche de fond)
- creditrisk.ml       : moteur logistique + registry du modèle actif
"""

__version__ = "0.1.0"
