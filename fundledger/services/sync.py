"""
Simulated cloud sync.

After a change, the snapshot is written to the cloud backup target
following a short delay. Only identified users are synced; guests stay
local. This is a stand-in: there is no conflict handling and no pull.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import structlog

from fundledger.audit import AuditLogger
from fundledger.config import get_settings
from fundledger.models.audit import LedgerEventBuilder
from fundledger.models.finance import LedgerSnapshot
from fundledger.services.storage import GUEST_USER_KEY, CloudBackupInterface, StorageError


logger = structlog.get_logger(__name__)


class CloudSyncService:
    """Delayed, fire-and-forget writer of cloud backups."""

    def __init__(
        self,
        backup: CloudBackupInterface,
        audit_logger: Optional[AuditLogger] = None,
        delay_seconds: Optional[float] = None,
        enabled: Optional[bool] = None,
    ):
        settings = get_settings().sync
        self._backup = backup
        self._audit = audit_logger or AuditLogger()
        self._delay = settings.delay_seconds if delay_seconds is None else delay_seconds
        self._enabled = settings.enabled if enabled is None else enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def should_sync(self, user_key: str) -> bool:
        return self._enabled and user_key != GUEST_USER_KEY

    async def sync(self, user_key: str, snapshot: LedgerSnapshot) -> Optional[datetime]:
        """
        Push `snapshot` after the configured delay.

        The snapshot is captured by the caller before the delay starts,
        so later changes don't leak into this backup.

        Returns:
            The sync timestamp, or None if skipped or failed
        """
        if not self.should_sync(user_key):
            logger.debug("cloud_sync_skipped", user_key=user_key)
            return None

        await asyncio.sleep(self._delay)

        synced_at = datetime.now(timezone.utc)
        try:
            self._backup.push_backup(user_key, snapshot, synced_at)
        except StorageError as e:
            self._audit.log(LedgerEventBuilder.cloud_sync(user_key, None, str(e)))
            return None

        self._audit.log(LedgerEventBuilder.cloud_sync(user_key, synced_at))
        return synced_at

    def last_sync_time(self, user_key: str) -> Optional[datetime]:
        return self._backup.get_last_sync_time(user_key)
