from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite:///insta_relay.db"
DEFAULT_GRAPH_API_VERSION = "v18.0"


@dataclass(frozen=True)
class Settings:
    facebook_app_id: str | None = None
    facebook_app_secret: str | None = None
    database_url: str = DEFAULT_DATABASE_URL
    frontend_url: str = "*"
    port: int = 3000
    graph_api_version: str = DEFAULT_GRAPH_API_VERSION
    graph_timeout_seconds: float = 20.0
    app_env: str = "development"

    @property
    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            facebook_app_id=os.getenv("FACEBOOK_APP_ID"),
            facebook_app_secret=os.getenv("FACEBOOK_APP_SECRET"),
            database_url=os.getenv("DATABASE_URL", "").strip() or DEFAULT_DATABASE_URL,
            frontend_url=os.getenv("FRONTEND_URL", "").strip() or "*",
            port=int(os.getenv("PORT") or "3000"),
            graph_api_version=os.getenv("GRAPH_API_VERSION", "").strip() or DEFAULT_GRAPH_API_VERSION,
            graph_timeout_seconds=float(os.getenv("GRAPH_TIMEOUT_SECONDS") or "20"),
            app_env=os.getenv("APP_ENV", "development"),
        )
