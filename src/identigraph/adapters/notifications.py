"""Notifier that writes notifications to the application log."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from identigraph.domain.ports import Notification

log = logging.getLogger(__name__)


class LoggingNotifier:
    def notify(self, organization_id: UUID, notification: Notification) -> None:
        log.info(
            "[%s] %s notification: %s. %s",
            organization_id,
            notification.type,
            notification.title,
            notification.body,
        )


if TYPE_CHECKING:
    from identigraph.domain.ports import Notifier

    _notifier_check: Notifier = LoggingNotifier()
