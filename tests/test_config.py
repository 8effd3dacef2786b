"""Tests for shell configuration and its environment overrides."""

from pathlib import Path

import pytest

from swat_shell.config import DEFAULT_HISTORY_CAPACITY, ShellConfig


class TestDefaults:
    """Verify the out-of-the-box configuration."""

    def test_defaults(self) -> None:
        """A bare config uses the documented defaults."""
        config = ShellConfig()
        assert config.storage_prefix == "swat:"
        assert config.history_capacity == DEFAULT_HISTORY_CAPACITY
        assert config.data_dir is None

    def test_rejects_zero_capacity(self) -> None:
        """History capacity must be positive."""
        with pytest.raises(ValueError, match="history_capacity"):
            ShellConfig(history_capacity=0)

    def test_rejects_negative_timeout(self) -> None:
        """The curl timeout must be positive."""
        with pytest.raises(ValueError, match="curl_timeout"):
            ShellConfig(curl_timeout=-1)


class TestFromEnv:
    """Verify SWAT_* environment overrides."""

    def test_empty_environment_gives_defaults(self) -> None:
        """No variables means the default config."""
        assert ShellConfig.from_env({}) == ShellConfig()

    def test_overrides(self) -> None:
        """Every variable maps onto its field."""
        config = ShellConfig.from_env(
            {
                "SWAT_STORAGE_PREFIX": "t:",
                "SWAT_STATE_KEY": "state",
                "SWAT_HISTORY_CAPACITY": "5",
                "SWAT_STORE_QUOTA": "1024",
                "SWAT_CURL_TIMEOUT": "2.5",
                "SWAT_DATA_DIR": "/tmp/swat",
            }
        )
        assert config == ShellConfig(
            storage_prefix="t:",
            state_key="state",
            history_capacity=5,
            store_quota_bytes=1024,
            curl_timeout=2.5,
            data_dir=Path("/tmp/swat"),
        )

    def test_bad_number_raises(self) -> None:
        """A non-numeric capacity is a ValueError."""
        with pytest.raises(ValueError):  # noqa: PT011
            ShellConfig.from_env({"SWAT_HISTORY_CAPACITY": "lots"})
