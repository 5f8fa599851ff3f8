"""
Shared plumbing for registry workflow services.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy.orm import Session

from ..db.audit_service import AuditService
from ..db.models import AccountModel, NotificationModel
from ..db.services import AccountService, NotificationService
from .results import unauthorized

logger = structlog.get_logger()


class RegistryWorkflow:
    """Base class: resolves the acting account and writes side-effect notifications."""

    def __init__(
        self,
        db: Session,
        audit: Optional[AuditService] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.db = db
        self.audit = audit or AuditService(db)
        self.notifications = notifications or NotificationService(db)
        self.accounts = AccountService(db)

    def _require_account(self, acting_account_id: Optional[str]) -> AccountModel:
        """Resolve the signed-in account or fail with an authorization error."""
        if not acting_account_id:
            raise unauthorized("You must be signed in")
        account = self.accounts.get_account(acting_account_id)
        if not account:
            raise unauthorized("Account not found")
        return account

    def _notify(self, **params: Any) -> Optional[NotificationModel]:
        """
        Best-effort notification.

        Runs after the primary change is committed. A failure is logged and
        rolled back; it never reaches the caller.
        """
        try:
            return self.notifications.create_notification(**params)
        except Exception as e:
            self.db.rollback()
            logger.error(
                "Failed to create notification",
                user_id=params.get("user_id"),
                type=getattr(params.get("type"), "value", params.get("type")),
                error=str(e),
                exc_info=True,
            )
            return None
