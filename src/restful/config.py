"""Session configuration via environment variables (RESTFUL_ prefix) or defaults."""

from __future__ import annotations

import httpx
from pydantic_settings import BaseSettings

VERSION = "0.1.0"


class RestfulConfig(BaseSettings):
    timeout: float = 30.0
    connect_timeout: float = 10.0
    follow_redirects: bool = True
    http2: bool = False
    user_agent: str = f"restful/{VERSION}"
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_prefix": "RESTFUL_"}

    def build_client(self) -> httpx.AsyncClient:
        """Create an httpx client carrying these timeouts and defaults."""
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
            follow_redirects=self.follow_redirects,
            http2=self.http2,
            headers={"User-Agent": self.user_agent},
        )
