from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppConfig(BaseSettings):
    """Application configuration with automatic environment variable loading.

    All settings can be overridden via environment variables with the DEPENDABOT_PRS_ prefix.
    For example:
        - DEPENDABOT_PRS_APP_ID=123456
        - DEPENDABOT_PRS_INSTALLATION_ID=7890123
        - DEPENDABOT_PRS_PRIVATE_KEY_PATH=/secrets/app.pem
        - DEPENDABOT_PRS_OWNER=my-org
        - DEPENDABOT_PRS_REPOS=service-a,service-b
        - DEPENDABOT_PRS_SCHEDULER_ENABLED=true

    Alternatively, settings can be provided programmatically when creating the Container:
        container = Container()
        container.config.from_pydantic(AppConfig(owner="my-org", repos=["service-a"]))
    """

    model_config = SettingsConfigDict(
        env_prefix="DEPENDABOT_PRS_",
        case_sensitive=False,
        extra="forbid",
    )

    app_id: Optional[str] = Field(
        default=None,
        description="GitHub App ID, used as the issuer of the signed app credential",
    )

    installation_id: Optional[str] = Field(
        default=None,
        description="Installation of the GitHub App whose access tokens are requested",
    )

    private_key: Optional[str] = Field(
        default=None,
        description="Inline PEM private key (PKCS#1 or PKCS#8). Takes precedence over private_key_path",
    )

    private_key_path: Optional[Path] = Field(
        default=None,
        description="Path to a PEM private key file, read on every credential mint",
    )

    owner: Optional[str] = Field(
        default=None,
        description="User or organization owning the monitored repositories",
    )

    repos: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Repository names to monitor. Environment value may be comma-separated or a JSON array",
    )

    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL (override for GitHub Enterprise)",
    )

    cache_ttl_ms: int = Field(
        default=300_000,
        ge=1,
        description="How long a repository's pull request list stays cached, in milliseconds",
    )

    cache_max_size: int = Field(
        default=100,
        ge=1,
        description="Maximum number of repositories held in the cache",
    )

    scheduler_enabled: bool = Field(
        default=False,
        description="Whether the background refresh job is registered",
    )

    scheduler_cron: str = Field(
        default="0 7 * * *",
        min_length=1,
        description="Crontab expression (5 fields, or 6 with leading seconds) for the refresh job",
    )

    scheduler_max_retries: int = Field(
        default=3,
        ge=0,
        description="Additional attempts for a failed refresh batch",
    )

    scheduler_retry_delay_ms: int = Field(
        default=5_000,
        ge=0,
        description="Fixed delay between refresh batch attempts, in milliseconds",
    )

    @field_validator("repos", mode="before")
    @classmethod
    def _split_repos(cls, value: object) -> object:
        if isinstance(value, str):
            raw = value.strip()
            if raw.startswith("["):
                return json.loads(raw)
            return [part.strip() for part in raw.split(",") if part.strip()]
        return value
