"""Configuration management with XDG paths, atomic writes, and profile resolution.

This module handles all persistent configuration for the ``oauth2kit``
command line:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.oauth2kit/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_data_dir`, :func:`get_profiles_dir`.
* **Profiles** -- One JSON file per client registration, each deserialised
  into a :class:`~oauth2kit.models.ClientProfile`. Managed via
  :func:`load_profile`, :func:`save_profile`, :func:`delete_profile`.
* **Profile resolution** -- :func:`resolve_profile` picks the active profile
  from the CLI flag, ``OAUTH2KIT_PROFILE``, or the only profile on disk.
* **Credential resolution** -- :func:`resolve_credential` reads the client
  secret from an env var, a file, or an interactive prompt, so secrets never
  sit in the profile file.
* **Client settings** -- :func:`build_client_settings` turns a profile into
  :class:`~oauth2kit.models.ClientSettings`.

The library itself never reads these files; :class:`~oauth2kit.client.OAuth2Client`
takes its settings as arguments.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Optional

from oauth2kit.exceptions import ConfigError
from oauth2kit.models import ClientProfile, ClientSettings

_APP_NAME = "oauth2kit"
_ENV_PROFILE = "OAUTH2KIT_PROFILE"
_ENV_SERVER = "OAUTH2KIT_SERVER"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/oauth2kit/`` (default ``~/.config/oauth2kit/``).
    On macOS/Windows: ``~/.oauth2kit/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (stored tokens, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/oauth2kit/`` (default ``~/.local/share/oauth2kit/``).
    On macOS/Windows: ``~/.oauth2kit/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_profiles_dir() -> Path:
    """Return ``<config_dir>/profiles/``, creating it if necessary."""
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write *data* to *path* atomically using a temp file and rename.

    The temporary file lives in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX. When *mode* is given the
    permissions are applied before any content is written, so a token file
    is never readable by others, even briefly.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return all profile names in the profiles directory, sorted alphabetically."""
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def profile_exists(name: str) -> bool:
    """Return ``True`` if a profile named *name* exists on disk."""
    return _profile_path(name).is_file()


def load_profile(name: str) -> ClientProfile:
    """Load and validate a profile from disk.

    Raises:
        ConfigError: If the profile file does not exist, contains invalid
            JSON, or fails Pydantic validation.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return ClientProfile.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: ClientProfile) -> None:
    """Persist *profile* atomically; the file name is derived from ``profile.name``."""
    data = profile.model_dump(mode="json")
    atomic_write(_profile_path(profile.name), json.dumps(data, indent=2) + "\n")


def delete_profile(name: str) -> None:
    """Delete a profile's JSON file.

    Raises:
        ConfigError: If the profile does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    path.unlink()


def resolve_profile(cli_profile: Optional[str] = None) -> ClientProfile:
    """Determine and load the active profile.

    Precedence (high to low):
        1. ``cli_profile`` (the ``--profile`` flag)
        2. ``OAUTH2KIT_PROFILE``
        3. The only profile on disk, if there is exactly one

    ``OAUTH2KIT_SERVER``, when set, replaces the profile's ``server``.

    Raises:
        ConfigError: If no profile can be selected or it fails to load.
    """
    name = cli_profile or os.environ.get(_ENV_PROFILE) or None
    if name is None:
        profiles = list_profiles()
        if len(profiles) == 1:
            name = profiles[0]
        elif not profiles:
            raise ConfigError("No profiles configured. Create one with: oauth2kit profile add")
        else:
            raise ConfigError(
                f"Several profiles exist ({', '.join(profiles)}); pick one with --profile "
                f"or {_ENV_PROFILE}"
            )

    profile = load_profile(name)
    env_server = os.environ.get(_ENV_SERVER)
    if env_server:
        profile = profile.model_copy(update={"server": env_server})
    return profile


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a secret from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts interactively (requires a TTY)

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Client secret: ")

    raise ConfigError(f"Unknown credential source format: {source}")


def build_client_settings(profile: ClientProfile) -> ClientSettings:
    """Build :class:`~oauth2kit.models.ClientSettings` from *profile*, resolving its secret."""
    secret = None
    if profile.client_secret_source:
        secret = resolve_credential(profile.client_secret_source)
    return ClientSettings(
        client_id=profile.client_id,
        client_secret=secret,
        server=profile.server,
        authorization_endpoint=profile.authorization_endpoint,
        token_endpoint=profile.token_endpoint,
        introspection_endpoint=profile.introspection_endpoint,
        revocation_endpoint=profile.revocation_endpoint,
        discovery_endpoint=profile.discovery_endpoint,
        authentication_method=profile.authentication_method,
        timeout=profile.timeout,
    )
