"""Client configuration.

Settings are read from environment variables, optionally seeded from a
``.env`` file via python-dotenv:

    FSVIEW_BASE_URL              Server origin (default http://localhost:6012)
    FSVIEW_API_PREFIX            Explicit API path prefix, e.g. /filesuploader
    FSVIEW_HOST_PATH             Path the UI is hosted under, used to detect
                                 the prefix when FSVIEW_API_PREFIX is unset
    FSVIEW_TIMEOUT               Request timeout in seconds
    FSVIEW_RETRY                 Enable transport retries (1/true/yes)
    FSVIEW_MAX_RETRIES           Retry attempts when enabled
    FSVIEW_CONVERGENCE_ATTEMPTS  Refresh cycles after a rename
    FSVIEW_CONVERGENCE_DELAY     Seconds before the second refresh cycle
"""

import os
from collections.abc import Mapping

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Prefix used when the UI is served behind the reverse proxy
PROXY_PREFIX = "/filesuploader"

DEFAULT_BASE_URL = "http://localhost:6012"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def normalize_prefix(prefix: str | None) -> str:
    """Return ``prefix`` with one leading slash and no trailing slash.

    An empty or ``/`` prefix normalizes to ``""``.
    """
    prefix = (prefix or "").strip().strip("/")
    return f"/{prefix}" if prefix else ""


def detect_api_prefix(host_path: str | None) -> str:
    """Derive the API prefix from the path the UI is hosted under.

    Args:
        host_path: Path of the hosting page, e.g. ``/filesuploader/``.

    Returns:
        ``/filesuploader`` when the hosting path contains it, else ``""``.
    """
    if host_path and PROXY_PREFIX in host_path:
        return PROXY_PREFIX
    return ""


class ClientSettings(BaseModel):
    """Connection and synchronization settings.

    Attributes:
        base_url: Server origin.
        api_prefix: Explicit API prefix; wins over detection when set.
        host_path: Hosting page path used for prefix detection.
        timeout: Request timeout in seconds.
        retry_enabled: Whether transient transport failures are retried.
        max_retries: Retry attempts when enabled.
        convergence_attempts: Refresh cycles issued after a rename.
        convergence_delay: Seconds between the first and second cycle.
    """

    base_url: str = DEFAULT_BASE_URL
    api_prefix: str | None = None
    host_path: str | None = None
    timeout: float = Field(30.0, gt=0)
    retry_enabled: bool = False
    max_retries: int = Field(3, ge=0)
    convergence_attempts: int = Field(2, ge=1)
    convergence_delay: float = Field(0.5, ge=0)

    @property
    def resolved_prefix(self) -> str:
        """The API prefix to use, determined once from the settings."""
        if self.api_prefix is not None:
            return normalize_prefix(self.api_prefix)
        return detect_api_prefix(self.host_path)


def settings_from_env(environ: Mapping[str, str] | None = None) -> ClientSettings:
    """Build settings from an environment mapping.

    Args:
        environ: Mapping to read from (default: ``os.environ``).

    Returns:
        The settings, with defaults for unset variables.
    """
    env = os.environ if environ is None else environ
    values: dict[str, object] = {}

    if "FSVIEW_BASE_URL" in env:
        values["base_url"] = env["FSVIEW_BASE_URL"]
    if "FSVIEW_API_PREFIX" in env:
        values["api_prefix"] = env["FSVIEW_API_PREFIX"]
    if "FSVIEW_HOST_PATH" in env:
        values["host_path"] = env["FSVIEW_HOST_PATH"]
    if "FSVIEW_TIMEOUT" in env:
        values["timeout"] = env["FSVIEW_TIMEOUT"]
    if "FSVIEW_RETRY" in env:
        values["retry_enabled"] = env["FSVIEW_RETRY"].strip().lower() in _TRUE_VALUES
    if "FSVIEW_MAX_RETRIES" in env:
        values["max_retries"] = env["FSVIEW_MAX_RETRIES"]
    if "FSVIEW_CONVERGENCE_ATTEMPTS" in env:
        values["convergence_attempts"] = env["FSVIEW_CONVERGENCE_ATTEMPTS"]
    if "FSVIEW_CONVERGENCE_DELAY" in env:
        values["convergence_delay"] = env["FSVIEW_CONVERGENCE_DELAY"]

    return ClientSettings(**values)


def load_settings(env_file: str | os.PathLike[str] | None = None) -> ClientSettings:
    """Load a ``.env`` file (if any) and read settings from the environment.

    Variables already present in the environment take precedence over the
    file.

    Args:
        env_file: Path of the dotenv file; python-dotenv searches for
            ``.env`` when omitted.

    Returns:
        The loaded settings.
    """
    load_dotenv(dotenv_path=env_file)
    return settings_from_env()
