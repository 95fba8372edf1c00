import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.domain.exceptions import ConfigurationException
from src.domain.models import OrganizationConfig

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT_SECONDS = 300


class Settings(BaseModel):
    """Process-wide settings, read from the environment (and `.env`)."""
    model_config = ConfigDict(frozen=True)

    github_app_id: Optional[str] = None
    github_app_private_key: Optional[str] = Field(default=None, repr=False)
    github_app_private_key_path: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    git_host: str = "github.com"
    public_org: Optional[str] = None
    private_org: Optional[str] = None
    git_timeout_seconds: float = Field(default=DEFAULT_GIT_TIMEOUT_SECONDS, gt=0)
    log_level: str = "INFO"

    def load_private_key(self) -> str:
        """Returns the GitHub App private key, preferring inline content over a key file."""
        if self.github_app_private_key:
            # Keys stored in env files often carry escaped newlines
            return self.github_app_private_key.replace("\\n", "\n")

        if not self.github_app_private_key_path:
            raise ConfigurationException(
                "GITHUB_APP_PRIVATE_KEY or GITHUB_APP_PRIVATE_KEY_PATH must be set."
            )

        key_path = Path(self.github_app_private_key_path)
        if not key_path.exists():
            raise ConfigurationException(f"GitHub App private key not found at: {key_path}")
        return key_path.read_text()


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Loads `.env` (if present) and builds Settings from the environment."""
    load_dotenv(env_file)

    values = {
        "github_app_id": os.getenv("GITHUB_APP_ID"),
        "github_app_private_key": os.getenv("GITHUB_APP_PRIVATE_KEY"),
        "github_app_private_key_path": os.getenv("GITHUB_APP_PRIVATE_KEY_PATH"),
        "github_api_url": os.getenv("GITHUB_API_URL"),
        "git_host": os.getenv("GIT_HOST"),
        "public_org": os.getenv("PUBLIC_ORG"),
        "private_org": os.getenv("PRIVATE_ORG"),
        "git_timeout_seconds": os.getenv("GIT_TIMEOUT_SECONDS"),
        "log_level": os.getenv("LOG_LEVEL"),
    }
    try:
        # Unset variables fall back to the model defaults
        return Settings(**{k: v for k, v in values.items() if v})
    except ValidationError as e:
        raise ConfigurationException(f"Invalid settings: {e}") from e


class OrganizationConfigResolver:
    """
    Maps a logical organization id to its public/private organization pair.

    PUBLIC_ORG overrides the logical id when set; PRIVATE_ORG defaults to the public org.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def resolve(self, org_id: str) -> OrganizationConfig:
        if not org_id:
            raise ConfigurationException("Organization id is required.")

        public_org = self.settings.public_org or org_id
        private_org = self.settings.private_org or public_org

        config = OrganizationConfig(public_org=public_org, private_org=private_org)
        logger.debug(f"Resolved config for '{org_id}': {config}")
        return config
