from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from imageshare.core.utils import get_local_ip

# Configuration
PACKAGE_DIR = Path(__file__).resolve().parent.parent
TEMPLATE_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"
TITLE_DATABASE_PATH = PACKAGE_DIR / "data" / "3dsreleases.xml"


class Settings(BaseSettings):
    """Runtime settings, read from the environment or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    domain: str | None = None
    public_scheme: str = "http"
    upload_limit: int = 10  # MB
    delete_delay: int = 2  # Minutes before an upload is removed
    upload_dir: Path = Path("uploads")
    # Uploads written here are kept, there is no automatic deletion
    external_dir: Path | None = None
    plausible_domain: str | None = None
    imgur_client_id: str | None = None
    rate_limit_file: Path = Path("rateLimitReset.txt")
    log_level: str = "INFO"

    @property
    def web_domain(self) -> str:
        return self.domain or get_local_ip()

    @property
    def public_base_url(self) -> str:
        return f"{self.public_scheme}://{self.web_domain}"

    @property
    def upload_limit_bytes(self) -> int:
        return self.upload_limit * 1024 * 1024

    @property
    def storage_dir(self) -> Path:
        return self.external_dir or self.upload_dir

    @property
    def imgur_enabled(self) -> bool:
        return bool(self.imgur_client_id)


@lru_cache
def get_settings() -> Settings:
    """Dependency to get the settings instance."""
    return Settings()
