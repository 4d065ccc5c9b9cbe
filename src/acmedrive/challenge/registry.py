"""Challenge preparer registry.

Loads preparers for the built-in challenge types and any custom
``ext:`` overrides from configuration, and provides lookup by
:class:`ChallengeType`.

A custom preparer replaces the built-in one for its type; a failure to
load a custom preparer is fatal because the configured challenge type
could not be served otherwise.

Usage::

    from acmedrive.challenge.registry import ChallengeRegistry

    registry = ChallengeRegistry(settings.challenges, settings.storage)
    preparer = registry.get_preparer(ChallengeType.DNS_01)
    context = preparer.prepare(domain="example.com", challenge=challenge)
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

from acmedrive.challenge.base import ChallengePreparer
from acmedrive.core.types import ChallengeType

if TYPE_CHECKING:
    from acmedrive.config.settings import ChallengeSettings, StorageSettings

log = logging.getLogger(__name__)

# Maps challenge type → (module_path, class_name, per-type settings attribute)
_BUILTIN_PREPARERS: dict[ChallengeType, tuple[str, str, str | None]] = {
    ChallengeType.HTTP_01: ("acmedrive.challenge.http01", "Http01Preparer", "http01"),
    ChallengeType.DNS_01: ("acmedrive.challenge.dns01", "Dns01Preparer", "dns01"),
    ChallengeType.TLS_SNI_01: ("acmedrive.challenge.tls_sni01", "TlsSni01Preparer", None),
}


class ChallengeRegistry:
    """Registry of challenge preparers.

    Parameters
    ----------
    settings:
        The ``challenges`` section from :class:`DriveSettings`.
    storage:
        The ``storage`` section, handed to every preparer.

    """

    def __init__(self, settings: ChallengeSettings, storage: StorageSettings | None = None) -> None:
        self._settings = settings
        self._storage = storage
        self._preparers: dict[ChallengeType, ChallengePreparer] = {}
        self._load()

    def _load(self) -> None:
        for challenge_type in _BUILTIN_PREPARERS:
            self._load_builtin(challenge_type)
        for type_str, class_path in (self._settings.custom or {}).items():
            challenge_type = ChallengeType(type_str)
            if not class_path.startswith("ext:"):
                msg = f"Custom preparer for '{type_str}' must use the 'ext:' prefix, got '{class_path}'"
                raise ValueError(msg)
            self._load_external(challenge_type, class_path[4:])

    def _load_builtin(self, challenge_type: ChallengeType) -> None:
        """Load a built-in preparer and register it."""
        mod_path, cls_name, settings_attr = _BUILTIN_PREPARERS[challenge_type]
        module = importlib.import_module(mod_path)
        cls = getattr(module, cls_name)

        self._validate_class(cls, challenge_type.value)

        per_type_settings = getattr(self._settings, settings_attr, None) if settings_attr else None
        self._preparers[challenge_type] = cls(settings=per_type_settings, storage=self._storage)
        log.debug("Loaded challenge preparer: %s", challenge_type.value)

    def _load_external(self, challenge_type: ChallengeType, fqn: str) -> None:
        """Load a custom preparer by fully-qualified class name.

        Parameters
        ----------
        challenge_type:
            The type the preparer is registered for.
        fqn:
            e.g. ``"mycompany.acme.dns.Route53Preparer"``

        """
        module_path, _, cls_name = fqn.rpartition(".")
        if not module_path:
            msg = (
                f"Invalid external preparer '{fqn}': must be fully "
                "qualified (e.g. 'mypackage.module.ClassName')"
            )
            raise ValueError(msg)

        module = importlib.import_module(module_path)
        cls = getattr(module, cls_name)

        if not (isinstance(cls, type) and issubclass(cls, ChallengePreparer)):
            msg = f"External preparer '{fqn}' must be a subclass of ChallengePreparer"
            raise TypeError(msg)

        self._validate_class(cls, f"ext:{fqn}")
        if cls.challenge_type != challenge_type:
            msg = (
                f"External preparer '{fqn}' handles '{cls.challenge_type.value}', "
                f"but is configured for '{challenge_type.value}'"
            )
            raise TypeError(msg)

        self._preparers[challenge_type] = cls(settings=None, storage=self._storage)
        log.info("Loaded external challenge preparer for %s: %s", challenge_type.value, fqn)

    @staticmethod
    def _validate_class(cls: type, label: str) -> None:
        """Verify that a preparer class has the required attributes."""
        if not hasattr(cls, "challenge_type"):
            msg = f"Preparer class '{label}' is missing the 'challenge_type' class attribute"
            raise TypeError(msg)

        challenge_type = cls.challenge_type
        if not isinstance(challenge_type, ChallengeType):
            msg = (
                f"Preparer class '{label}' has challenge_type="
                f"{challenge_type!r}, which is not a valid ChallengeType"
            )
            raise TypeError(msg)

    def get_preparer(self, challenge_type: ChallengeType) -> ChallengePreparer:
        """Return the preparer for a given challenge type.

        Raises
        ------
        KeyError
            If no preparer is registered for the type.

        """
        try:
            return self._preparers[challenge_type]
        except KeyError:
            msg = f"No preparer registered for challenge type '{challenge_type.value}'"
            raise KeyError(msg) from None

    @property
    def types(self) -> list[ChallengeType]:
        return list(self._preparers.keys())
