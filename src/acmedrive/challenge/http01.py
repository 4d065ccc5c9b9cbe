"""HTTP-01 challenge preparer (RFC 8555 §8.3).

The server fetches
``http://{domain}/.well-known/acme-challenge/{token}`` and expects the
key authorization as the exact response body.  With a configured
webroot the file is written (and later removed) automatically;
otherwise the user is told what to publish.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from acmedrive.challenge.base import ChallengePreparer
from acmedrive.core.proofs import HTTP01_PATH_PREFIX, http01_path
from acmedrive.core.types import ChallengeType

if TYPE_CHECKING:
    from acmedrive.models import Challenge

log = logging.getLogger(__name__)


class Http01Preparer(ChallengePreparer):
    """HTTP-01 challenge preparer."""

    challenge_type = ChallengeType.HTTP_01

    def _token_file(self, token: str) -> Path | None:
        webroot = getattr(self.settings, "webroot", None)
        if not webroot:
            return None
        return Path(webroot) / HTTP01_PATH_PREFIX.strip("/") / token

    def prepare(self, *, domain: str, challenge: Challenge) -> dict[str, Any]:
        content = self._require_key_authorization(challenge)

        written_to = None
        token_file = self._token_file(challenge.token)
        if token_file is not None:
            token_file.parent.mkdir(parents=True, exist_ok=True)
            token_file.write_text(content, encoding="ascii")
            written_to = str(token_file)
            log.info("HTTP-01: wrote token file for %s to %s", domain, token_file)

        return {
            "domain": domain,
            "token": challenge.token,
            "path": http01_path(challenge.token),
            "content": content,
            "written_to": written_to,
        }

    def cleanup(self, *, domain: str, challenge: Challenge) -> None:
        token_file = self._token_file(challenge.token)
        if token_file is None:
            return
        try:
            token_file.unlink()
            log.debug("HTTP-01: removed token file %s", token_file)
        except FileNotFoundError:
            pass
