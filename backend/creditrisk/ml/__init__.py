"""
creditrisk.ml

Package “Machine Learning” (moteur de scoring) :
- Famille de modèle unique : régression logistique binaire régularisée L2.
- Contient :
  - validation des entrées (features) et standardisation (scaler),
  - modèle immuable + calcul de probabilité stable (logistic),
  - entraînement par descente de gradient batch (trainer),
  - record de persistance + stockage joblib (records, model_store),
  - registry du modèle actif avec swap atomique (model_registry),
  - taxonomie d’erreurs métier (errors).

Note :
- Aucune dépendance à FastAPI ici : le cœur est testable sans la couche HTTP.
"""
