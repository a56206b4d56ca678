"""
creditrisk.core

Package “cœur” transverse (cross-cutting concerns), indépendant du moteur de scoring :

- settings
  Configuration (variables d’environnement) : seuil de décision, hyper-paramètres
  d’entraînement par défaut, dossier des modèles, clé admin.

- errors
  Format d’erreur API uniforme (code, message, status, request_id, timestamp) et
  traduction des erreurs métier (creditrisk.ml.errors) en statut HTTP.

- logging / request_id
  Logs JSON corrélés par request_id.

- security
  Clé API des routes d’administration.
"""
