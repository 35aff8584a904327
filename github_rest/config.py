"""Configuration utilities for the GitHub REST client."""

from __future__ import annotations

import shutil
import threading
import warnings
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older runtimes
    import tomli  # type: ignore[no-redef]
import keyring
from pydantic import BaseModel, ValidationError, field_validator
from tomli_w import dump as toml_dump

from .constants import (
    API_PAGINATION,
    DEFAULT_API_VERSION,
    DEFAULT_BASE_URL,
    DEFAULT_UPLOAD_URL,
    DEFAULT_USER_AGENT,
    DEFAULT_WEB_URL,
)
from .exceptions import ConfigurationError

CONFIG_DIR = Path.home() / ".config" / "github_rest"
CONFIG_FILE = CONFIG_DIR / "config.toml"
CACHE_DIR = Path.home() / ".cache" / "github_rest"
CONFIG_VERSION = "1.0.0"
KEYRING_SERVICE = "github-rest-core"
KEYRING_USERNAME = "github-pat"

_keyring_lock = threading.Lock()
_keyring_fallback_attempted = False

_KEYRING_HINT = (
    "Install keyrings.alt for file-based storage (pip install keyrings.alt) "
    "or configure your system keyring."
)


def _viable_backends() -> List[Any]:
    from keyring.backends import fail

    backends = [
        backend for backend in keyring.backend.get_all_keyring()
        if not isinstance(backend, fail.Keyring) and backend.priority > 0
        # SecretService is the backend that most likely already failed
        and "SecretService" not in type(backend).__name__
    ]
    return sorted(backends, key=lambda backend: backend.priority, reverse=True)


def _setup_keyring_fallback() -> bool:
    """Switch to another keyring backend after the default one failed.

    Typical on Linux hosts whose D-Bus secret service has no usable
    collection. Prefers the encrypted file keyring from ``keyrings.alt``
    and otherwise tries the remaining installed backends. Only the first
    caller in the process does the work.

    Returns:
        True if a working backend is now active, False otherwise.
    """
    global _keyring_fallback_attempted

    with _keyring_lock:
        if _keyring_fallback_attempted:
            return False
        _keyring_fallback_attempted = True

        try:
            from keyrings.alt.file import EncryptedKeyring
        except ImportError:
            pass
        else:
            keyring.set_keyring(EncryptedKeyring())
            return True

        for backend in _viable_backends():
            try:
                keyring.set_keyring(backend)
                keyring.get_password(KEYRING_SERVICE, "backend-check")
            except Exception:
                continue
            return True

    warnings.warn(f"System keyring is not accessible. {_KEYRING_HINT}", UserWarning)
    return False


def _call_keyring(action: str, operation: Callable[[], Any]) -> Any:
    """Run a keyring operation, retrying once on a fallback backend.

    Raises:
        RuntimeError: If no backend could complete the operation.
    """
    try:
        return operation()
    except Exception as exc:
        error: Exception = exc

    if _setup_keyring_fallback():
        try:
            return operation()
        except Exception as exc:
            error = exc

    raise RuntimeError(
        f"Failed to {action} credentials in the keyring. Error: {error}. {_KEYRING_HINT}"
    ) from error


class ServerConfig(BaseModel):
    """Server endpoints for github.com or a GitHub Enterprise deployment."""

    api_url: str = DEFAULT_BASE_URL
    upload_url: str = DEFAULT_UPLOAD_URL
    web_url: str = DEFAULT_WEB_URL

    @field_validator("api_url", "upload_url", "web_url")
    @classmethod
    def validate_http_url(cls, v: str, info) -> str:
        """Validate URL scheme."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"{info.field_name} must be a valid HTTP(S) URL, got: {v}")
        return v

    @classmethod
    def for_enterprise(cls, host: str) -> "ServerConfig":
        """Derive GitHub Enterprise Server URLs from its base host URL."""
        host = host.strip().rstrip("/")
        if not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        return cls(
            api_url=f"{host}/api/v3/",
            upload_url=f"{host}/api/uploads/",
            web_url=host,
        )


class APIConfig(BaseModel):
    """Configuration for API requests."""

    timeout: int = 30
    api_version: str = DEFAULT_API_VERSION
    user_agent: str = DEFAULT_USER_AGENT
    per_page: int = API_PAGINATION['default_per_page']
    max_pages: int = API_PAGINATION['max_pages']
    check_rate_limit: bool = False

    @field_validator("timeout", "max_pages")
    @classmethod
    def validate_positive(cls, v: int, info) -> int:
        """Validate that numeric fields are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got {v}")
        return v

    @field_validator("per_page")
    @classmethod
    def validate_per_page(cls, v: int) -> int:
        """Validate per_page against GitHub's bounds."""
        if not API_PAGINATION['min_per_page'] <= v <= API_PAGINATION['max_per_page']:
            raise ValueError(
                f"per_page must be between {API_PAGINATION['min_per_page']} "
                f"and {API_PAGINATION['max_per_page']}, got {v}"
            )
        return v


class CacheConfig(BaseModel):
    """Conditional-request cache settings."""

    enabled: bool = False
    expire_after: int = 3600

    @field_validator("expire_after")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"expire_after must not be negative, got {v}")
        return v


@dataclass(slots=True)
class Config:
    """Top-level configuration container."""

    version: str = CONFIG_VERSION
    server: ServerConfig = field(default_factory=ServerConfig)
    api: APIConfig = field(default_factory=APIConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    @classmethod
    def load(cls, path: Path = CONFIG_FILE) -> "Config":
        """Load configuration data from disk.

        Args:
            path: Optional override for the configuration file path.

        Returns:
            Config: The loaded configuration object.

        Raises:
            ConfigurationError: If configuration file is corrupted or invalid.
        """

        if not path.exists():
            return cls()

        try:
            with path.open("rb") as handle:
                raw: Dict[str, Any] = tomli.load(handle)
        except (OSError, tomli.TOMLDecodeError) as exc:
            raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

        version = raw.get("version", CONFIG_VERSION)

        try:
            server = ServerConfig(**raw.get("server", {}))
            api = APIConfig(**raw.get("api", {}))
            cache = CacheConfig(**raw.get("cache", {}))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc

        return cls(version=version, server=server, api=api, cache=cache)

    def dump(self, path: Path = CONFIG_FILE, backup: bool = True) -> None:
        """Persist the configuration to disk.

        Args:
            path: Path to save the configuration file.
            backup: If True and config file exists, create a backup before overwriting.
        """

        path.parent.mkdir(parents=True, exist_ok=True)

        if backup and path.exists():
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            backup_path = path.parent / f"{path.stem}.{timestamp}.bak"
            shutil.copy2(path, backup_path)

        payload: Dict[str, Any] = {
            "version": self.version,
            "server": self.server.model_dump(),
            "api": self.api.model_dump(),
            "cache": self.cache.model_dump(),
        }

        with path.open("wb") as handle:
            toml_dump(payload, handle)

    def update_auth(self, pat: str) -> None:
        """Store the PAT in the system keyring.

        Raises:
            RuntimeError: If unable to store credentials in any keyring backend.
        """
        _call_keyring("store", lambda: keyring.set_password(KEYRING_SERVICE, KEYRING_USERNAME, pat))

    def get_pat(self) -> Optional[str]:
        """Retrieve the stored PAT from the system keyring.

        Raises:
            RuntimeError: If unable to access the keyring backend.
        """
        return _call_keyring("retrieve", lambda: keyring.get_password(KEYRING_SERVICE, KEYRING_USERNAME))

    def has_pat(self) -> bool:
        """Check if a PAT is stored in the keyring.

        Returns:
            True if PAT is set, False otherwise or if keyring is inaccessible.
        """
        try:
            return self.get_pat() is not None
        except RuntimeError:
            return False

    def to_display_dict(self) -> Dict[str, Any]:
        """Return a serialisable representation for display purposes."""

        auth_display = "<set>" if self.has_pat() else "<not set>"
        return {
            "auth": {"pat": auth_display},
            "server": self.server.model_dump(),
            "api": self.api.model_dump(),
            "cache": self.cache.model_dump(),
        }

    def _sections(self) -> Dict[str, BaseModel]:
        return {
            "server": self.server,
            "api": self.api,
            "cache": self.cache,
        }

    def _resolve(self, key: str) -> tuple[BaseModel, str]:
        parts = key.split(".")
        if len(parts) != 2:
            raise ValueError(f"Invalid key format '{key}'. Expected format: section.field")

        section, name = parts
        sections = self._sections()
        if section not in sections:
            valid_sections = ", ".join(sections.keys())
            raise ValueError(f"Invalid section '{section}'. Valid sections: {valid_sections}")

        config_obj = sections[section]
        if name not in type(config_obj).model_fields:
            valid_fields = ", ".join(type(config_obj).model_fields.keys())
            raise ValueError(f"Invalid field '{name}' for section '{section}'. Valid fields: {valid_fields}")
        return config_obj, name

    def set_value(self, key: str, value: str) -> None:
        """Set a configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., 'api.timeout')
            value: Value to set (converted to the field's type)

        Raises:
            ValueError: If key is invalid or value cannot be converted
        """
        config_obj, name = self._resolve(key)
        field_type = type(config_obj).model_fields[name].annotation

        try:
            if field_type is int:
                converted: Any = int(value)
            elif field_type is bool:
                converted = value.lower() in ("true", "1", "yes", "on")
            else:
                converted = value
        except (ValueError, TypeError) as exc:
            raise ValueError(f"Cannot convert '{value}' to {field_type} for {key}") from exc

        # Validate through a fresh model so field validators run
        current = config_obj.model_dump()
        current[name] = converted
        try:
            validated = type(config_obj).model_validate(current)
        except ValidationError as exc:
            error_msg = "; ".join(
                f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}" for e in exc.errors()
            )
            raise ValueError(f"Validation error for {key}: {error_msg}") from exc

        for field_name in type(validated).model_fields:
            setattr(config_obj, field_name, getattr(validated, field_name))

    def get_value(self, key: str) -> Any:
        """Get a configuration value using dot notation.

        Raises:
            ValueError: If key is invalid
        """
        config_obj, name = self._resolve(key)
        return getattr(config_obj, name)
