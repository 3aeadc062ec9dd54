import os
from typing import Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()


def _env(name: str, default: str) -> str:
    return os.environ.get(f"RENTIFY_{name}", default)


class ServiceSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_url: str = Field(default="http://localhost:8081/api")
    property_url: str = Field(default="http://localhost:8082/api")
    document_url: str = Field(default="http://localhost:8083/api")
    application_url: str = Field(default="http://localhost:8084/api")
    contact_url: str = Field(default="http://localhost:8085/api")

    request_timeout: Optional[float] = Field(default=10.0, description="Seconds, None disables")
    institutional_domains: Tuple[str, ...] = ("duocuc.cl", "profesor.duoc.cl")
    landing_path: str = "/"
    session_file: Optional[str] = Field(default=None, description="JSON file, None keeps the session in memory")
    encryption_key: Optional[str] = Field(default=None, description="base64, 32 bytes")
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        timeout = float(_env("REQUEST_TIMEOUT", "10"))
        domains = _env("INSTITUTIONAL_DOMAINS", "duocuc.cl,profesor.duoc.cl")
        return cls(
            user_url=_env("USER_SERVICE_URL", "http://localhost:8081/api"),
            property_url=_env("PROPERTY_SERVICE_URL", "http://localhost:8082/api"),
            document_url=_env("DOCUMENT_SERVICE_URL", "http://localhost:8083/api"),
            application_url=_env("APPLICATION_SERVICE_URL", "http://localhost:8084/api"),
            contact_url=_env("CONTACT_SERVICE_URL", "http://localhost:8085/api"),
            request_timeout=timeout if timeout > 0 else None,
            institutional_domains=tuple(d.strip().lower() for d in domains.split(",") if d.strip()),
            landing_path=_env("LANDING_PATH", "/"),
            session_file=_env("SESSION_FILE", "") or None,
            encryption_key=os.environ.get("ENCRYPTION_KEY"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
        )
