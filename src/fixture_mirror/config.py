"""Configuration management for Fixture Mirror."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV_VAR = "FIXTURE_MIRROR_CONFIG"
GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"


class GithubConfig(BaseModel):
    """Configuration for submitting test suggestions as GitHub pull requests.

    API documentation: https://docs.github.com/en/rest
    """

    api_url: str = Field(
        default="https://api.github.com", description="GitHub REST API base URL"
    )
    # Should be set via GITHUB_TOKEN environment variable
    access_token: str = Field(default="", description="Token used for API calls")
    repo: str = Field(default="", description="Target repository as owner/name")
    branch: str = Field(
        default="master", description="Branch pull requests are opened against"
    )
    accepted_tests_location: str = Field(
        default="tests", description="Folder suggested test files are committed to"
    )
    test_file_extension: str = Field(
        default="yaml", description="Extension of suggested test files"
    )
    timeout: float = Field(default=30.0, description="Request timeout in seconds")


class ServerConfig(BaseModel):
    """Configuration for the HTTP server."""

    host: str = Field(default="127.0.0.1", description="Host to bind to")
    port: int = Field(default=8090, description="Port to listen on")
    cors_allow_origins: List[str] = Field(
        default_factory=lambda: ["*"], description="Allowed CORS origins"
    )


class MirrorConfig(BaseModel):
    """Main configuration model."""

    mirror_root: Path = Field(
        default=Path("/opt/fixture-mirror"),
        description="Directory holding every mirrored repository",
    )
    registry_path: Optional[Path] = Field(
        default=None,
        description="YAML list of tracked repositories (default: <mirror_root>/repositories.yaml)",
    )
    default_reference: str = Field(
        default="origin/master",
        description="Reference tracked when a repository has no override",
    )
    default_fixture_folder: str = Field(
        default="tests",
        description="Fixture folder used when a repository has no override",
    )
    provider_urls: Dict[str, str] = Field(
        default_factory=lambda: {"github": "https://github.com"},
        description="Base clone URL per provider",
    )
    git_timeout_seconds: Optional[float] = Field(
        default=None, description="Timeout applied to each git command"
    )

    github: GithubConfig = Field(default_factory=GithubConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @field_validator("mirror_root", mode="before")
    @classmethod
    def convert_path(cls, v: Any) -> Path:
        """Convert string paths to Path objects, expanding the home directory."""
        return Path(v).expanduser()

    @property
    def resolved_registry_path(self) -> Path:
        """Registry location, defaulting to a file inside the mirror root."""
        if self.registry_path is not None:
            return Path(self.registry_path).expanduser()
        return self.mirror_root / "repositories.yaml"


class ConfigManager:
    """Manages configuration loading, saving, and validation."""

    DEFAULT_CONFIG_PATH = Path.home() / ".fixture-mirror" / "config.json"

    def __init__(self, config_path: Optional[Path] = None):
        if config_path is None:
            env_path = os.environ.get(CONFIG_PATH_ENV_VAR)
            config_path = Path(env_path) if env_path else self.DEFAULT_CONFIG_PATH
        self.config_path = Path(config_path)
        self._config: Optional[MirrorConfig] = None

    def load(self) -> MirrorConfig:
        """Load configuration from file or create default."""
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)
                self._config = MirrorConfig(**data)
            except Exception as e:
                raise ValueError(f"Failed to load config from {self.config_path}: {e}")
        else:
            logger.debug(f"No config at {self.config_path}, using defaults")
            self._config = MirrorConfig()

        token = os.environ.get(GITHUB_TOKEN_ENV_VAR)
        if token and not self._config.github.access_token:
            self._config.github.access_token = token

        return self._config

    def save(self, config: Optional[MirrorConfig] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self._config

        if config is None:
            raise ValueError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, "w") as f:
            json.dump(config.model_dump(mode="json"), f, indent=2)

    def get_config(self) -> MirrorConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            return self.load()
        return self._config
