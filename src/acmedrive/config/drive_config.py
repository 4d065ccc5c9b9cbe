"""acmedrive configuration loader.

Lifecycle::

    # 1. CLI creates the singleton (once, at startup)
    DriveConfig(config_file="acmedrive.yaml")

    # 2. Any module retrieves it afterwards
    from acmedrive.config import get_config
    cfg = get_config()
    cfg.settings.issuance.poll_max_attempts  # typed access

    # 3. Dynamic access
    cfg.get("transport.options.endpoint", default="https://acme.invalid")

Loading runs in a fixed order: read the YAML/JSON file, resolve
``${VAR}`` / ``${VAR:-default}`` references, validate against the
bundled JSON Schema, run the cross-field checks, build the typed
settings tree.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator

from acmedrive.config.settings import DriveSettings, build_settings
from acmedrive.core.types import ChallengeType

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_CLASS_PATH_RE = re.compile(
    r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)+$",
)

_KNOWN_CHALLENGE_TYPES = frozenset(t.value for t in ChallengeType)
_BUILTIN_BACKENDS = frozenset({"simulated", "acme"})

_MIN_RSA_KEY_SIZE = 2048
_MAX_POLL_BUDGET_SECONDS = 300

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: DriveConfig | None = None


def get_config() -> DriveConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`DriveConfig` has not been
    created yet (i.e. the CLI entry point has not run).
    """
    if _instance is None:
        msg = (
            "Configuration not initialised. "
            "DriveConfig must be created with config_file= before calling get_config()."
        )
        raise RuntimeError(msg)
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when loading or validation finds one or more problems."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


def _coerce_numbers(data: dict) -> None:
    """Turn env-substituted numeric strings back into numbers.

    ``${POLL_ATTEMPTS:-10}`` resolves to the string ``"10"``; the
    schema expects an integer.
    """
    issuance = data.get("issuance")
    if not isinstance(issuance, dict):
        return
    for key, kind in (
        ("key_size", int),
        ("poll_max_attempts", int),
        ("poll_interval_seconds", float),
    ):
        value = issuance.get(key)
        if isinstance(value, str):
            try:
                issuance[key] = kind(value)
            except ValueError:
                continue


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class DriveConfig:
    """Central configuration for an acmedrive run.

    The JSON schema is bundled at ``config/schema.json``; users supply
    only ``config_file``.

    After construction the typed settings tree is available at
    :pyattr:`settings` and the raw dict via :pyattr:`data` /
    :pymeth:`get`.
    """

    def __init__(self, *, config_file: str | Path) -> None:
        global _instance  # noqa: PLW0603

        self._source = Path(config_file)
        self._data = self._load()
        self._validate_schema()
        self.additional_checks()

        self._settings: DriveSettings = build_settings(self._data)
        _instance = self

    # -- lifecycle ----------------------------------------------------------

    def _load(self) -> dict[str, Any]:
        """Load the config file then resolve ``${VAR}`` env-var references.

        Runs env-var resolution **before** schema validation so that
        substituted values (e.g. ``${LOG_LEVEL:-INFO}``) are checked
        against enum constraints in the schema.
        """
        if not self._source.is_file():
            raise ConfigValidationError([f"Config file not found: {self._source}"])

        try:
            with self._source.open(encoding="utf-8") as f:
                if self._source.suffix in {".yaml", ".yml"}:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ConfigValidationError([f"Cannot parse {self._source}: {exc}"]) from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigValidationError(
                [f"Top level of {self._source} must be a mapping, got {type(data).__name__}"],
            )

        _resolve_env_vars(data)
        _coerce_numbers(data)
        return data

    def _validate_schema(self) -> None:
        schema = json.loads(_SCHEMA_PATH.read_text(encoding="utf-8"))
        validator = Draft202012Validator(schema)
        errors = [
            f"{'.'.join(str(p) for p in err.absolute_path) or '(root)'}: {err.message}"
            for err in sorted(validator.iter_errors(self._data), key=lambda e: list(e.absolute_path))
        ]
        if errors:
            raise ConfigValidationError(errors)

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> DriveSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    @property
    def data(self) -> dict[str, Any]:
        return self._data

    def get(self, dotted: str, default: Any = None) -> Any:  # noqa: ANN401
        """Return the raw value at a dot-separated path, or *default*."""
        node: Any = self._data
        for part in dotted.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    # -- cross-field validation ---------------------------------------------

    def additional_checks(self) -> None:
        """Semantic & cross-field validation.

        Runs after schema validation passes.  Collects every problem
        before raising so the user sees them all at once.
        """
        errors: list[str] = []
        warnings: list[str] = []

        issuance = self._data.get("issuance") or {}
        transport = self._data.get("transport") or {}
        storage = self._data.get("storage") or {}
        challenges = self._data.get("challenges") or {}

        # -- issuance --
        attempts = issuance.get("poll_max_attempts", 10)
        interval = issuance.get("poll_interval_seconds", 3)
        if attempts < 1:
            errors.append(f"issuance.poll_max_attempts must be at least 1, got {attempts}")
        if interval < 0:
            errors.append(f"issuance.poll_interval_seconds must not be negative, got {interval}")
        key_size = issuance.get("key_size", _MIN_RSA_KEY_SIZE)
        if key_size < _MIN_RSA_KEY_SIZE:
            errors.append(
                f"issuance.key_size ({key_size}) is below the minimum of {_MIN_RSA_KEY_SIZE}",
            )
        if attempts >= 1 and interval >= 0 and attempts * interval > _MAX_POLL_BUDGET_SECONDS:
            warnings.append(
                f"issuance.poll_max_attempts * poll_interval_seconds = "
                f"{attempts * interval:g}s; a stuck challenge blocks the run that long",
            )

        # -- transport --
        backend = transport.get("backend", "simulated")
        if backend not in _BUILTIN_BACKENDS:
            if not backend.startswith("ext:"):
                errors.append(
                    f"transport.backend '{backend}' is not a built-in backend "
                    f"({', '.join(sorted(_BUILTIN_BACKENDS))}) and has no 'ext:' prefix",
                )
            elif not _CLASS_PATH_RE.match(backend[4:]):
                errors.append(
                    f"transport.backend '{backend}' is not a valid class path "
                    "(expected 'ext:package.module.ClassName')",
                )

        # -- storage --
        names = {
            key: storage.get(key, default)
            for key, default in (
                ("account_key_file", "user.key"),
                ("domain_key_file", "domain.key"),
                ("csr_file", "domain.csr"),
                ("chain_file", "domain-chain.crt"),
            )
        }
        seen: dict[str, str] = {}
        for key, name in names.items():
            if name in seen:
                errors.append(
                    f"storage.{key} and storage.{seen[name]} both point to '{name}'",
                )
            else:
                seen[name] = key

        # -- challenges --
        for type_str, class_path in (challenges.get("custom") or {}).items():
            if type_str not in _KNOWN_CHALLENGE_TYPES:
                errors.append(
                    f"challenges.custom has unknown challenge type '{type_str}'; "
                    f"known types: {', '.join(sorted(_KNOWN_CHALLENGE_TYPES))}",
                )
            if not class_path.startswith("ext:") or not _CLASS_PATH_RE.match(class_path[4:]):
                errors.append(
                    f"challenges.custom.{type_str} '{class_path}' must be "
                    "'ext:package.module.ClassName'",
                )

        for w in warnings:
            log.warning("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    # -- helpers ------------------------------------------------------------

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None

    def __repr__(self) -> str:
        return f"<DriveConfig config_file={self._source}>"
