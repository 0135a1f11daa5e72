"""Configuration for the Trellis HTTP client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from trellis_mcp.errors import ConfigurationError

API_VERSION = "2025-03"


@dataclass(frozen=True)
class Settings:
    """Immutable settings loaded once from environment variables."""

    api_key: str = field(repr=False)
    api_base: str
    project_id: str = ""
    workflow_id: str = ""
    timeout: float = 30.0
    api_version: str = API_VERSION
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> Settings:
        api_key = os.getenv("TRELLIS_API_KEY", "")
        api_base = os.getenv("TRELLIS_API_BASE", "").rstrip("/")
        if not api_key:
            raise ConfigurationError("TRELLIS_API_KEY not found in environment variables")
        if not api_base:
            raise ConfigurationError("TRELLIS_API_BASE not found in environment variables")
        try:
            timeout = float(os.getenv("REQUEST_TIMEOUT", "30"))
            port = int(os.getenv("PORT", "3000"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e
        return cls(
            api_key=api_key,
            api_base=api_base,
            project_id=os.getenv("PROJECT_ID", ""),
            workflow_id=os.getenv("WORKFLOW_ID", ""),
            timeout=timeout,
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            log_level=os.getenv("TRELLIS_LOG_LEVEL", "WARNING").upper(),
        )

    @property
    def headers(self) -> dict[str, str]:
        # The workflow API takes the raw key, without a "Bearer" scheme.
        return {
            "accept": "application/json",
            "Content-Type": "application/json",
            "API-Version": self.api_version,
            "Authorization": self.api_key,
        }

    def require_project_id(self, override: str | None = None) -> str:
        project_id = override or self.project_id
        if not project_id:
            raise ConfigurationError(
                "project_id not provided and PROJECT_ID not found in environment variables"
            )
        return project_id

    def require_workflow_id(self, override: str | None = None) -> str:
        workflow_id = override or self.workflow_id
        if not workflow_id:
            raise ConfigurationError(
                "workflow_id not provided and WORKFLOW_ID not found in environment variables"
            )
        return workflow_id
