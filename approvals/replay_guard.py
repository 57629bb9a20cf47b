# =============================================================================
# POLYMARKET APPROVALS - SINGLE-USE REPLAY GUARD (OPT-IN)
# =============================================================================
#
# Two resume calls racing with the same approved token would both reach
# the venue. The core is stateless, so by default nothing prevents that.
#
# When an operator configures replay_guard_dir, an approved token is
# CLAIMED immediately before submission by atomically creating a marker
# file named after the token fingerprint. The second claim fails.
#
# SCOPE:
# - Marker content is the fingerprint and expiry only. No order details.
# - Markers for expired tokens are useless and may be pruned.
# - Without a directory the guard is a no-op.
#
# =============================================================================

import json
import logging
import os
import re
import time
from pathlib import Path
from typing import Optional, Union

from approvals.exceptions import TokenAlreadyUsedError

logger = logging.getLogger(__name__)

_FINGERPRINT_RE = re.compile(r"^[0-9a-f]{16,64}$")


class ReplayGuard:
    """Cross-process single-use marker store keyed by token fingerprint."""

    def __init__(self, directory: Optional[Union[str, Path]] = None):
        self.directory = Path(directory) if directory else None

    @property
    def enabled(self) -> bool:
        return self.directory is not None

    def claim(self, fingerprint: str, expires_at_ms: int) -> None:
        """
        Claim a token for submission.

        Raises:
            TokenAlreadyUsedError: The fingerprint was claimed before
            ValueError: The fingerprint is not a hex digest
        """
        if not self.enabled:
            return
        if not _FINGERPRINT_RE.match(fingerprint):
            raise ValueError(f"Invalid token fingerprint: {fingerprint!r}")

        self.directory.mkdir(parents=True, exist_ok=True)
        marker = self.directory / fingerprint
        payload = json.dumps(
            {"fingerprint": fingerprint, "expiresAtMs": int(expires_at_ms)},
            separators=(",", ":"),
        ).encode("utf-8")

        try:
            # Atomic across processes: succeeds once, fails thereafter.
            fd = os.open(marker, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
        except FileExistsError:
            logger.warning(f"Replay refused | fingerprint={fingerprint[:12]}")
            raise TokenAlreadyUsedError(fingerprint)
        try:
            os.write(fd, payload)
        finally:
            os.close(fd)

        logger.info(f"Token claimed | fingerprint={fingerprint[:12]}")

    def release(self, fingerprint: str) -> None:
        """
        Give a claim back.

        Only valid when the order provably never left this process
        (cancelled before posting). After a post attempt the claim stays.
        """
        if not self.enabled or not _FINGERPRINT_RE.match(fingerprint):
            return
        marker = self.directory / fingerprint
        if marker.exists():
            marker.unlink()
            logger.info(f"Token claim released | fingerprint={fingerprint[:12]}")

    def prune_expired(self, now_ms: Optional[int] = None) -> int:
        """
        Remove markers whose tokens can no longer be resumed.

        Returns:
            Number of markers removed
        """
        if not self.enabled or not self.directory.exists():
            return 0
        now_ms = int(time.time() * 1000) if now_ms is None else now_ms
        removed = 0
        for marker in self.directory.iterdir():
            if not _FINGERPRINT_RE.match(marker.name):
                continue
            try:
                data = json.loads(marker.read_text(encoding="utf-8"))
                expires_at_ms = int(data.get("expiresAtMs", 0))
            except (OSError, ValueError, TypeError):
                logger.warning(f"Unreadable replay marker kept: {marker.name[:12]}")
                continue
            if now_ms > expires_at_ms:
                marker.unlink()
                removed += 1
        return removed
