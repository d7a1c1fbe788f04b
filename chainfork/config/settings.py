"""Settings for a fork run, loaded from CLI options and CHAINFORK_* env vars."""
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import (
    DEFAULT_BASE_CHAIN,
    DEFAULT_EXCLUDED_PALLETS,
    DEFAULT_OUTPUT_PATH,
    DEFAULT_RPC_URL,
    KEYS_PAGE_SIZE,
    MAX_CONCURRENT_REQUESTS,
)
from ..errors import ConfigurationError
from .types import ChainIdentity, StorageCacheOption

_BLOCK_HASH = re.compile(r"^0x[0-9a-fA-F]{64}$")


class ForkSettings(BaseSettings):
    """Every input of a fork run."""

    model_config = SettingsConfigDict(
        env_prefix="CHAINFORK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Node binary used for build-spec
    binary: Path
    runtime: Optional[Path] = Field(default=None, description="Runtime WASM blob for the fork")
    out: Path = Field(default=Path(DEFAULT_OUTPUT_PATH))

    # Chain identities
    original_chain: str
    base_chain: str = Field(default=DEFAULT_BASE_CHAIN)
    fork_name: Optional[str] = None
    fork_id: Optional[str] = None

    # State source
    rpc: str = Field(default=DEFAULT_RPC_URL)
    storage: Optional[str] = Field(default=None, description="Snapshot cache path, or 'none'")
    at: Optional[str] = Field(default=None, description="Block hash to read state at")

    # Pallet selection
    pallets: Optional[List[str]] = None
    excluded_pallets: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDED_PALLETS))

    # Limits
    max_concurrent_requests: int = Field(default=MAX_CONCURRENT_REQUESTS)
    page_size: int = Field(default=KEYS_PAGE_SIZE)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="console")

    @field_validator("rpc")
    @classmethod
    def _check_rpc(cls, value: str) -> str:
        if not value.startswith(("ws://", "wss://")):
            raise ValueError("rpc must be a ws:// or wss:// url")
        return value

    @field_validator("at")
    @classmethod
    def _check_at(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _BLOCK_HASH.match(value):
            raise ValueError("at must be a 0x-prefixed 32-byte block hash")
        return value.lower() if value else value

    @field_validator("max_concurrent_requests", "page_size")
    @classmethod
    def _check_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be positive")
        return value

    @property
    def original_identity(self) -> ChainIdentity:
        return ChainIdentity.parse(self.original_chain)

    @property
    def base_identity(self) -> ChainIdentity:
        return ChainIdentity.parse(self.base_chain)

    @property
    def storage_option(self) -> Optional[StorageCacheOption]:
        if self.storage is None:
            return None
        return StorageCacheOption.parse(self.storage)


def load_settings(**overrides: Any) -> ForkSettings:
    """Build settings; ``None`` overrides fall through to the environment."""
    values: Dict[str, Any] = {k: v for k, v in overrides.items() if v is not None}
    try:
        return ForkSettings(**values)
    except ValidationError as e:
        raise ConfigurationError(str(e), "load settings") from e
