"""Session configuration passed explicitly into every client.

A ``Credentials`` pair is what the user types on the connection screen; an
``ApiSession`` is the immutable transport configuration derived from it.
Changing credentials produces a new ``ApiSession``; nothing mutates one in place.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from n8n_remote.core.config import Settings

API_KEY_HEADER = "X-N8N-API-KEY"


def normalize_instance_url(url: str) -> str:
    url = url.strip()
    while url.endswith("/"):
        url = url[:-1]
    return url


@dataclass(frozen=True)
class Credentials:
    instance_url: str
    api_key: str = field(repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "instance_url", normalize_instance_url(self.instance_url))

    @property
    def is_complete(self) -> bool:
        return bool(self.instance_url and self.api_key)

    def to_dict(self) -> dict[str, str]:
        return {"instanceUrl": self.instance_url, "apiKey": self.api_key}

    @classmethod
    def from_dict(cls, raw: dict) -> Credentials:
        return cls(
            instance_url=str(raw.get("instanceUrl") or raw.get("instance_url") or ""),
            api_key=str(raw.get("apiKey") or raw.get("api_key") or ""),
        )


@dataclass(frozen=True)
class ApiSession:
    credentials: Credentials
    api_prefix: str = "/api/v1"
    timeout: float = 30.0

    @property
    def instance_url(self) -> str:
        return self.credentials.instance_url

    @property
    def base_url(self) -> str:
        prefix = "/" + self.api_prefix.strip("/") if self.api_prefix.strip("/") else ""
        return f"{self.credentials.instance_url}{prefix}"

    @property
    def headers(self) -> dict[str, str]:
        return {
            API_KEY_HEADER: self.credentials.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def with_credentials(self, credentials: Credentials) -> ApiSession:
        return ApiSession(credentials=credentials, api_prefix=self.api_prefix, timeout=self.timeout)

    @classmethod
    def from_settings(cls, settings: Settings, credentials: Credentials | None = None) -> ApiSession:
        creds = credentials or Credentials(settings.N8N_INSTANCE_URL, settings.N8N_API_KEY)
        return cls(
            credentials=creds,
            api_prefix=settings.N8N_API_PREFIX,
            timeout=settings.N8N_TIMEOUT_SECONDS,
        )
