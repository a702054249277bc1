"""Configuration management for pyeo.

Values are looked up in the environment first and then in a JSON config
file (``~/.config/pyeo/config.json`` by default). Command line options
override both and are applied by the CLI.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .exceptions import EoConfigError
from .utils import DEFAULT_DEBOUNCE_MS, DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"
DEFAULT_GCS_API_URL = "https://storage.googleapis.com"


class Config:
    """Configuration manager for pyeo."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                        ``$PYEO_CONFIG_DIR`` or ``~/.config/pyeo``
        """
        self._config_dir = config_dir
        self._file_values: Optional[dict[str, Any]] = None

    @property
    def config_dir(self) -> Path:
        if self._config_dir is not None:
            return self._config_dir
        env_dir = os.environ.get("PYEO_CONFIG_DIR")
        if env_dir:
            return Path(env_dir)
        return Path.home() / ".config" / "pyeo"

    def get_config_path(self) -> Path:
        """Get the path to the config file."""
        return self.config_dir / CONFIG_FILE_NAME

    def load(self) -> dict[str, Any]:
        """Load values from the config file.

        Returns:
            Dictionary of config values (empty if there is no config file)

        Raises:
            EoConfigError: If the file exists but is not a JSON object
        """
        if self._file_values is not None:
            return self._file_values

        path = self.get_config_path()
        if not path.exists():
            self._file_values = {}
            return self._file_values

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise EoConfigError(f"Could not read config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise EoConfigError(f"Config file {path} must contain a JSON object")

        logger.debug("Loaded config from %s", path)
        self._file_values = data
        return self._file_values

    def save(self, **values: Any) -> None:
        """Merge values into the config file and write it.

        Args:
            **values: Config keys to set (``None`` removes a key)
        """
        data = dict(self.load())
        for name, value in values.items():
            if value is None:
                data.pop(name, None)
            else:
                data[name] = value

        path = self.get_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        # Restrict permissions, the file may hold a token
        path.chmod(0o600)
        self._file_values = data

    def is_configured(self) -> bool:
        """Check whether a config file exists."""
        return self.get_config_path().exists()

    def _get(self, name: str, *env_vars: str) -> Optional[Any]:
        for env_var in env_vars:
            value = os.environ.get(env_var)
            if value:
                return value
        return self.load().get(name)

    def _get_number(self, name: str, env_var: str, default: Any, cast: type) -> Any:
        value = self._get(name, env_var)
        if value is None or value == "":
            return default
        try:
            return cast(value)
        except (TypeError, ValueError) as e:
            raise EoConfigError(f"Invalid value for {name}: {value!r}") from e

    @property
    def storage(self) -> Optional[str]:
        """Default storage backend (``s3`` or ``gcs``)."""
        return self._get("storage", "EO_STORAGE")

    @property
    def region(self) -> Optional[str]:
        """AWS region used by the S3 backend."""
        return self._get("region", "AWS_REGION", "AWS_DEFAULT_REGION")

    @property
    def endpoint_url(self) -> Optional[str]:
        """Custom endpoint for S3-compatible stores."""
        return self._get("endpoint_url", "EO_S3_ENDPOINT_URL")

    @property
    def gcs_token(self) -> Optional[str]:
        """Fixed OAuth2 access token overriding Application Default Credentials."""
        return self._get("gcs_token", "EO_GCS_TOKEN", "GOOGLE_OAUTH_ACCESS_TOKEN")

    @property
    def gcs_api_url(self) -> str:
        """Base URL of the GCS JSON API."""
        return self._get("gcs_api_url", "EO_GCS_API_URL") or DEFAULT_GCS_API_URL

    @property
    def editor(self) -> Optional[str]:
        """Editor command from the config file."""
        return self.load().get("editor")

    @property
    def debounce_ms(self) -> int:
        """Debounce interval in milliseconds."""
        value = self._get_number(
            "debounce_ms", "EO_DEBOUNCE_MS", DEFAULT_DEBOUNCE_MS, int
        )
        if value < 0:
            raise EoConfigError(f"Invalid value for debounce_ms: {value}")
        return value

    @property
    def max_retries(self) -> int:
        """Maximum number of retries for a failed upload."""
        value = self._get_number(
            "max_retries", "EO_MAX_RETRIES", DEFAULT_MAX_RETRIES, int
        )
        if value < 0:
            raise EoConfigError(f"Invalid value for max_retries: {value}")
        return value

    @property
    def retry_delay(self) -> float:
        """Initial delay between upload retries in seconds."""
        return self._get_number(
            "retry_delay", "EO_RETRY_DELAY", DEFAULT_RETRY_DELAY, float
        )


config = Config()
