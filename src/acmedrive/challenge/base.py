"""Abstract base class for challenge preparers.

A preparer turns a selected challenge into publishable proof material
(a token file, a TXT record, a validation certificate) and into the
template context the user is shown before the challenge is triggered.

All preparers (built-in and custom) must inherit from
:class:`ChallengePreparer` and implement :meth:`prepare`.
"""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from acmedrive.config.settings import StorageSettings
    from acmedrive.core.types import ChallengeType
    from acmedrive.models import Challenge

log = logging.getLogger(__name__)


class ChallengePreparer(abc.ABC):
    """Base class for all challenge preparers.

    Subclasses must set :attr:`challenge_type` as a class attribute and
    implement :meth:`prepare`.

    Parameters
    ----------
    settings:
        Per-type settings (e.g. ``Http01Settings``), or ``None``.
    storage:
        The ``storage`` section, for preparers that write files.

    """

    challenge_type: ClassVar[ChallengeType]
    """The ACME challenge type this preparer handles."""

    def __init__(self, settings: Any = None, storage: StorageSettings | None = None) -> None:  # noqa: ANN401
        self.settings = settings
        self.storage = storage

    @abc.abstractmethod
    def prepare(self, *, domain: str, challenge: Challenge) -> dict[str, Any]:
        """Prepare proof material and return the instruction context.

        The returned dict is rendered with the ``<challenge_type>``
        instruction templates; it always contains ``domain``.
        """

    def cleanup(self, *, domain: str, challenge: Challenge) -> None:  # noqa: B027
        """Remove proof material after the challenge finished (any outcome).

        Default implementation is a no-op.
        """

    @staticmethod
    def _require_key_authorization(challenge: Challenge) -> str:
        if challenge.key_authorization is None:
            msg = f"Challenge {challenge.location} carries no key authorization"
            raise ValueError(msg)
        return challenge.key_authorization
