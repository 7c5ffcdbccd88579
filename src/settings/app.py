"""Client settings powered by Pydantic BaseSettings."""

from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from src.features.client.constants import DEFAULT_TIMEOUT_SECONDS, MAX_RETRY
from src.features.client.models import DumpLevel
from src.features.client.options import (
    Option,
    with_base_url,
    with_basic_auth,
    with_bearer_token,
    with_circuits,
    with_default_circuit_name,
    with_dump_level,
    with_log_level,
    with_retry,
    with_timeout,
)


class ClientSettings(BaseSettings):
    """Environment configuration for a client (``CAST_`` prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="CAST_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = ""
    retry: Annotated[int, Field(ge=0, le=MAX_RETRY)] = 0
    timeout_seconds: Annotated[float, Field(gt=0.0)] = DEFAULT_TIMEOUT_SECONDS
    default_circuit_name: str = ""
    circuits: Annotated[list[str], NoDecode] = Field(default_factory=list)
    bearer_token: str | None = None
    basic_auth_username: str | None = None
    basic_auth_password: str = ""
    log_level: str | None = None
    dump_level: DumpLevel = DumpLevel.STD

    @field_validator("circuits", mode="before")
    @classmethod
    def split_circuits(cls, v: object) -> object:
        """Accept a comma-separated list, e.g. CAST_CIRCUITS=users,billing."""
        if isinstance(v, str):
            return [name.strip() for name in v.split(",") if name.strip()]
        return v

    def to_options(self) -> list[Option]:
        """Convert the settings into construction options.

        Returns:
            Options for ``new``; unset values are skipped.
        """
        options: list[Option] = [
            with_retry(self.retry),
            with_timeout(self.timeout_seconds),
            with_dump_level(self.dump_level),
        ]
        if self.base_url:
            options.append(with_base_url(self.base_url))
        if self.circuits:
            options.append(with_circuits(*self.circuits))
        if self.default_circuit_name:
            options.append(with_default_circuit_name(self.default_circuit_name))
        if self.bearer_token:
            options.append(with_bearer_token(self.bearer_token))
        if self.basic_auth_username:
            options.append(
                with_basic_auth(self.basic_auth_username, self.basic_auth_password)
            )
        if self.log_level:
            options.append(with_log_level(self.log_level))
        return options


def get_settings() -> ClientSettings:
    """Get a settings instance."""
    return ClientSettings()
