"""Configuration loading from YAML and environment.

Secrets (the GitHub token) are taken from environment variables or from
files (Docker secrets). Never put real tokens in config files committed to
the repo.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from etp_exporter.errors import ConfigurationError


def _read_secret(env_key: str, file_env_key: str) -> str | None:
    """Read secret from env var or from file path in env (e.g. Docker
    secrets)."""
    value = _current_env.get(env_key)
    if value:
        return value.strip()
    file_path = _current_env.get(file_env_key)
    if file_path:
        return Path(file_path).read_text().strip()
    return None


# Injected by load_config so validators can read env/file
_current_env: dict[str, str] = {}


class GitHubConfig(BaseSettings):
    """GitHub API settings and source repository."""

    model_config = SettingsConfigDict(env_prefix="GITHUB_", extra="ignore")

    token: str | None = Field(default=None, description="PAT or app token; use env or secret file")
    api_url: str = Field(default="https://api.github.com", description="API base URL")
    repo_owner: str | None = Field(default=None, description="Owner of the repository to download issues from")
    repo_name: str | None = Field(default=None, description="Name of the repository to download issues from")
    per_page: int = Field(default=100, ge=1, le=100, description="Page size for list requests")
    max_retry: int = Field(default=3, ge=0, description="Retries after hitting the rate limit")
    max_failed_pages: int = Field(
        default=3, ge=1, description="Consecutive failed pages before a listing gives up"
    )
    timeout: int = Field(default=30, ge=1, description="HTTP timeout in seconds")

    @property
    def repository(self) -> str:
        """owner/name as used in API paths."""
        return f"{self.repo_owner}/{self.repo_name}"


class StoreConfig(BaseSettings):
    """Document store settings."""

    model_config = SettingsConfigDict(env_prefix="STORE_", extra="ignore")

    path: str = Field(default=".etp-export", description="Root directory of the document store")
    database_name: str = Field(default="etp-issues-export", description="Database directory under path")
    issues_collection: str = Field(default="issues", description="Collection to store issues in")
    reports_collection: str = Field(default="reports", description="Collection to store reports in")

    @model_validator(mode="after")
    def _distinct_collections(self) -> "StoreConfig":
        if self.issues_collection == self.reports_collection:
            raise ValueError(
                "Invalid collection names: can't use the same collection for issues and reports"
            )
        return self


class LoggingConfig(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="LOGGING_", extra="ignore")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )


class AppConfig(BaseSettings):
    """Root application config from YAML + env."""

    model_config = SettingsConfigDict(extra="ignore")

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def github_token_resolved(self) -> str | None:
        """Resolve GitHub token from config, env or Docker secret file."""
        t = self.github.token
        if t and not t.startswith("${"):
            return t
        return _read_secret("GITHUB_TOKEN", "GITHUB_TOKEN_FILE")

    def require_github(self) -> str:
        """Return the GitHub token, raising ConfigurationError if the API config is incomplete."""
        missing = []
        token = self.github_token_resolved
        if not token:
            missing.append("github.token")
        if not self.github.repo_owner:
            missing.append("github.repo_owner")
        if not self.github.repo_name:
            missing.append("github.repo_name")
        if missing:
            raise ConfigurationError(f"Missing GitHub API config: {', '.join(missing)}")
        return token


def _substitute_env(value: Any) -> Any:
    """Replace ${VAR} and $VAR in strings with os.environ."""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            key = value[2:-1].strip()
            return _current_env.get(key, value)
        # Simple $VAR
        if value.startswith("$") and not value.startswith("${"):
            key = value[1:].strip()
            return _current_env.get(key, value)
        return value
    if isinstance(value, dict):
        return {k: _substitute_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(v) for v in value]
    return value


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load config from YAML file and environment.

    Secrets: GITHUB_TOKEN or GITHUB_TOKEN_FILE. Invalid values raise
    ConfigurationError.
    """
    global _current_env
    import os

    _current_env = dict(os.environ)

    path = config_path or Path("config.yaml")
    raw: dict[str, Any] = {}
    if path.is_file():
        try:
            raw = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid config file {path}: {e}") from e
        raw = _substitute_env(raw)

    try:
        github = GitHubConfig(**(raw.get("github") or {}))
        store = StoreConfig(**(raw.get("store") or {}))
        logging = LoggingConfig(**(raw.get("logging") or {}))
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    return AppConfig(github=github, store=store, logging=logging)
