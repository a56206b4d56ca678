"""
creditrisk.schemas

Schémas Pydantic utilisés par l’API (contrats d’entrée/sortie).

Rôle (fonctionnel) :
- Valider les payloads entrants (enveloppe stricte, extra="forbid").
- Structurer les réponses (scoring, jobs d’entraînement, infos modèle).
"""
