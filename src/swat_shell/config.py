"""Shell configuration — tunables with environment overrides.

Defaults suit an interactive session.  Every field can be overridden
with a ``SWAT_*`` environment variable::

    SWAT_STORAGE_PREFIX    namespace prefix for every store key
    SWAT_STATE_KEY         key (under the prefix) holding the filesystem
    SWAT_HISTORY_CAPACITY  maximum number of remembered command lines
    SWAT_STORE_QUOTA       byte quota of the backing store
    SWAT_CURL_TIMEOUT      seconds before ``curl`` gives up
    SWAT_DATA_DIR          directory for the on-disk store (unset = memory)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DEFAULT_HISTORY_CAPACITY = 100
"""How many command lines the history ring buffer keeps."""

DEFAULT_STORE_QUOTA = 5 * 1024 * 1024
"""Byte quota of the backing store, matching a typical browser localStorage."""

DEFAULT_CURL_TIMEOUT = 8.0


@dataclass(frozen=True)
class ShellConfig:
    """Immutable configuration for one shell instance."""

    storage_prefix: str = "swat:"
    state_key: str = "vfs:state"
    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    store_quota_bytes: int = DEFAULT_STORE_QUOTA
    curl_timeout: float = DEFAULT_CURL_TIMEOUT
    data_dir: Path | None = None

    def __post_init__(self) -> None:
        """Reject values that would break the filesystem invariants.

        Raises:
            ValueError: If a capacity or timeout is not positive.

        """
        if self.history_capacity < 1:
            msg = f"history_capacity must be positive, got {self.history_capacity}"
            raise ValueError(msg)
        if self.store_quota_bytes < 1:
            msg = f"store_quota_bytes must be positive, got {self.store_quota_bytes}"
            raise ValueError(msg)
        if self.curl_timeout <= 0:
            msg = f"curl_timeout must be positive, got {self.curl_timeout}"
            raise ValueError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ShellConfig:
        """Build a config from ``SWAT_*`` variables, falling back to defaults.

        Args:
            environ: Variables to read (defaults to ``os.environ``).

        Raises:
            ValueError: If a numeric variable does not parse.

        """
        env = os.environ if environ is None else environ
        defaults = cls()
        data_dir = env.get("SWAT_DATA_DIR")
        return cls(
            storage_prefix=env.get("SWAT_STORAGE_PREFIX", defaults.storage_prefix),
            state_key=env.get("SWAT_STATE_KEY", defaults.state_key),
            history_capacity=int(
                env.get("SWAT_HISTORY_CAPACITY", defaults.history_capacity)
            ),
            store_quota_bytes=int(env.get("SWAT_STORE_QUOTA", defaults.store_quota_bytes)),
            curl_timeout=float(env.get("SWAT_CURL_TIMEOUT", defaults.curl_timeout)),
            data_dir=Path(data_dir) if data_dir else None,
        )
