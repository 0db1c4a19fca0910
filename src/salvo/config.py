"""Server configuration."""

from __future__ import annotations

import os
from typing import Any, Dict

from pydantic import BaseModel, Field

from salvo.telemetry import env_flag


class ServerConfig(BaseModel):
    """Where the server listens and how chatty it is."""

    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=1, le=65535)
    debug_log: bool = False
    conceal_fleets: bool = True
    cors_allowed_origins: str | list[str] = "*"

    @classmethod
    def from_env(cls, **overrides: Any) -> "ServerConfig":
        """Read `SALVO_*` env vars; non-``None`` overrides win."""

        data: Dict[str, Any] = {}
        if os.getenv("SALVO_HOST"):
            data["host"] = os.environ["SALVO_HOST"]
        if os.getenv("SALVO_PORT"):
            data["port"] = os.environ["SALVO_PORT"]
        for field, env_name in (("debug_log", "SALVO_DEBUG_LOG"), ("conceal_fleets", "SALVO_CONCEAL_FLEETS")):
            value = env_flag(env_name)
            if value is not None:
                data[field] = value
        origins = os.getenv("SALVO_CORS_ORIGINS")
        if origins:
            parts = [part.strip() for part in origins.split(",") if part.strip()]
            data["cors_allowed_origins"] = "*" if parts == ["*"] else parts

        data.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**data)
