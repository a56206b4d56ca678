"""
creditrisk.services

Package “services” : use-cases indépendants des endpoints HTTP.

Rôle (fonctionnel) :
- scoring_service : contrat de prédiction (validation, standardisation, score, décision).
- training_service : entraînements en tâche de fond + publication dans le registry.

Principe :
- creditrisk.api = transport HTTP (routes, validation, dépendances)
- creditrisk.services = orchestration métier (réutilisable, testable)
- creditrisk.ml = moteur numérique + registry
"""
