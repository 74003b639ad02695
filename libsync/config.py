"""
Configuration de l'application via pydantic-settings.

La configuration est chargée depuis les variables d'environnement avec le préfixe LIBSYNC_,
et peut optionnellement être fournie via un fichier .env.

Les constantes de synchronisation (taille de page, timeouts, retries) sont exposées
ici pour pouvoir être ajustées sur les serveurs lents sans modifier le code.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Trouver le fichier .env à la racine du projet (parent de libsync/)
_PROJECT_ROOT = Path(__file__).parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Paramètres de l'application avec support des variables d'environnement.

    Tous les paramètres peuvent être surchargés via des variables d'environnement
    avec le préfixe LIBSYNC_.
    Exemple : LIBSYNC_SYNC_PAGE_SIZE=200

    Les chemins sont automatiquement étendus (~ -> répertoire home).
    """

    model_config = SettingsConfigDict(
        env_prefix="LIBSYNC_",
        env_file=_ENV_FILE if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Base de données
    database_url: str = Field(default="sqlite:///libsync.db")

    # Cache d'images et registre des intégrations
    cache_dir: Path = Field(default=Path("~/.cache/libsync"))
    integrations_file: Path = Field(default=Path("integrations.json"))

    # Synchronisation (pagination, timeouts, retries)
    sync_page_size: int = Field(default=500, ge=1)
    sync_timeout_seconds: float = Field(default=60.0, gt=0)
    sync_max_retries: int = Field(default=2, ge=0)
    progress_min_interval_ms: int = Field(default=150, ge=0)
    recently_added_limit: int = Field(default=20, ge=1)
    periodic_sync_hours: int = Field(default=6, ge=0)  # 0 = désactivé

    # Cache d'images
    image_download_concurrency: int = Field(default=5, ge=1)
    image_download_timeout_seconds: float = Field(default=10.0, gt=0)
    large_image_max_per_scope: int = Field(default=100, ge=1)
    image_max_age_days: int = Field(default=30, ge=1)

    # Logging (fichier + stderr, rotation 10MB, 5 fichiers de rétention)
    log_level: str = Field(default="INFO")
    log_file: Path = Field(default=Path("logs/libsync.log"))
    log_rotation_size: str = Field(default="10 MB")
    log_retention_count: int = Field(default=5)

    @field_validator("cache_dir", "integrations_file", "log_file", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        """Étend ~ vers le répertoire home dans les chemins."""
        return Path(v).expanduser()

    @property
    def library_cache_dir(self) -> Path:
        """Répertoire racine des vignettes de bibliothèque."""
        return self.cache_dir / "library"
