"""Identity and cache option types parsed from command-line strings."""
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ChainKind(Enum):
    """Chain identity kinds understood by the node's build-spec command."""
    DEV = "dev"
    NAMED = "named"


class ChainIdentity(BaseModel):
    """Which chain the node binary should generate a spec for."""

    model_config = ConfigDict(frozen=True)

    kind: ChainKind
    name: Optional[str] = None

    @classmethod
    def dev(cls) -> "ChainIdentity":
        return cls(kind=ChainKind.DEV)

    @classmethod
    def parse(cls, value: str) -> "ChainIdentity":
        if value.lower() == "dev":
            return cls.dev()
        return cls(kind=ChainKind.NAMED, name=value)

    @property
    def is_dev(self) -> bool:
        return self.kind is ChainKind.DEV

    def to_args(self) -> List[str]:
        """Arguments selecting this chain on the node command line."""
        if self.is_dev:
            return ["--dev"]
        return ["--chain", self.name]

    def __str__(self) -> str:
        return "dev" if self.is_dev else self.name


class StorageCacheOption(BaseModel):
    """Value of ``--storage``: a cache path, or ``none`` for an empty snapshot."""

    model_config = ConfigDict(frozen=True)

    path: Optional[Path] = None

    @classmethod
    def parse(cls, value: str) -> "StorageCacheOption":
        if value.lower() == "none":
            return cls()
        return cls(path=Path(value))

    @property
    def disabled(self) -> bool:
        return self.path is None

    def __str__(self) -> str:
        return "none" if self.disabled else str(self.path)
