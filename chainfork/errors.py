"""Error types for the fork pipeline.

Every failure is fatal: nothing in the pipeline retries or recovers locally.
Errors carry the stage that produced them and are propagated to the CLI,
which reports them and exits non-zero.
"""
import contextlib
from typing import Iterator, Optional, Type


class ForkError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, message: str, stage: Optional[str] = None):
        self.stage = stage
        super().__init__(f"{stage}: {message}" if stage else message)


class ConfigurationError(ForkError):
    """Raised when the supplied settings are inconsistent."""


class RpcError(ForkError):
    """Transport, protocol or remote-side failure talking to the node."""

    def __init__(self, message: str, stage: Optional[str] = None, code: Optional[int] = None):
        self.code = code
        super().__init__(message, stage)


class MissingStorageValueError(ForkError):
    """A key that was just enumerated has no value at the same block."""

    def __init__(self, key: str, at: str):
        self.key = key
        self.at = at
        super().__init__(f"no value for enumerated key {key} at block {at}", "fetch storage values")


class ChainSpecParseError(ForkError):
    """The external spec generator failed or produced an unreadable document."""


class SnapshotCacheError(ForkError):
    """The snapshot cache file could not be read, parsed or written."""


class RuntimeCodeError(ForkError):
    """Neither a runtime file nor a ``:code`` entry is available."""


@contextlib.contextmanager
def stage(name: str, error_type: Type[ForkError] = ForkError) -> Iterator[None]:
    """Attach a stage name to any non-fork exception escaping the block."""
    try:
        yield
    except ForkError as e:
        if e.stage is None:
            e.stage = name
            e.args = (f"{name}: {e.args[0]}",) if e.args else (name,)
        raise
    except Exception as e:
        raise error_type(f"{type(e).__name__}: {e}", name) from e
