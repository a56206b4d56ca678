from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from creditrisk.ml.trainer import TrainingConfig

"""
Core Settings.

Rôle (fonctionnel) :
- Centralise la configuration de l’application via variables d’environnement (Pydantic Settings).
- Charge un fichier .env (par défaut backend/.env) pour faciliter le dev/local.
- Fournit un objet global `settings` importable dans tout le projet.

Organisation :
- App : nom, env, debug, niveau de log, seuil “slow request”.
- CORS : origines autorisées (front).
- Auth admin : API_KEY (routes /admin/*).
- Modèles : dossier des bundles + chargement au démarrage.
- Scoring : seuil de décision + bornes des niveaux de risque.
- Entraînement : hyper-paramètres par défaut (transmis au Trainer, jamais lus par le cœur).
"""

BACKEND_DIR = Path(__file__).resolve().parents[2]  # backend/
ENV_PATH = BACKEND_DIR / ".env"


class Settings(BaseSettings):
    # --- App ---
    APP_NAME: str = "CreditRisk Scoring API"
    ENV: str = "dev"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    SLOW_REQUEST_MS: int = 800

    # --- CORS ---
    # Liste CSV des origines autorisées
    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"

    # --- Auth admin ---
    # Si vide : bypass en dev (voir core/security.py)
    API_KEY: str = ""

    # --- Modèles ---
    MODELS_DIR: Path = BACKEND_DIR / "models"
    LOAD_MODEL_ON_STARTUP: bool = True

    # --- Scoring ---
    # Refus si probabilité de défaut > seuil
    DECISION_THRESHOLD: float = 0.5
    RISK_TIER_MEDIUM: float = 0.3
    RISK_TIER_HIGH: float = 0.6

    # --- Entraînement ---
    TRAIN_LEARNING_RATE: float = 0.1
    TRAIN_L2: float = 0.01
    TRAIN_MAX_ITERATIONS: int = 1000
    TRAIN_TOLERANCE: float = 1e-6
    # Jobs terminés conservés pour GET /admin/train/{job_id} (les plus anciens sont oubliés)
    TRAINING_JOBS_KEPT: int = 100

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def training_config(self) -> TrainingConfig:
        """Hyper-paramètres par défaut du Trainer."""
        return TrainingConfig(
            learning_rate=self.TRAIN_LEARNING_RATE,
            l2=self.TRAIN_L2,
            max_iterations=self.TRAIN_MAX_ITERATIONS,
            tolerance=self.TRAIN_TOLERANCE,
        )


# Instance globale importable
settings = Settings()
