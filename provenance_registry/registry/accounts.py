"""
Account registration and onboarding.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError

from .enums import UserRole
from .results import LifecycleError, OperationResult, conflict, forbidden, not_found
from .roles import resolve_role, without_privileged_keys
from .schemas import AccountCreate
from .workflow import RegistryWorkflow

logger = structlog.get_logger()


class AccountOnboarding(RegistryWorkflow):
    """Registers accounts and lets an owner choose or change their role."""

    def register(self, data: AccountCreate) -> OperationResult:
        if data.id and self.accounts.get_account(data.id):
            return OperationResult.fail(conflict("Account already exists"))

        try:
            account = self.accounts.create_account(
                name=data.name.strip(),
                email=data.email,
                role=data.role,
                public_data=without_privileged_keys(data.public_data),
                account_id=data.id,
            )
        except IntegrityError:
            self.db.rollback()
            return OperationResult.fail(conflict("Email is already registered"))

        logger.info(
            "Account registered",
            account_id=account.id,
            onboarding_required=not account.resolved_role.is_set,
        )
        return OperationResult.ok(account=account.to_dict())

    def update_role(
        self, account_id: str, role: UserRole, acting_account_id: Optional[str]
    ) -> OperationResult:
        """Set the role during onboarding, or change it later. Owner only."""
        try:
            actor = self._require_account(acting_account_id)
            if actor.id != account_id:
                raise forbidden("You can only change your own role")
        except LifecycleError as e:
            return OperationResult.fail(e)

        before = resolve_role(actor.public_data).role
        account = self.accounts.set_role(account_id, role)
        if not account:
            return OperationResult.fail(not_found("Account not found"))

        self.audit.log_update(
            entity_kind="Account",
            entity_id=account.id,
            before={"role": before.value if before else None},
            after={"role": role.value},
            actor_id=actor.id,
            note="Onboarding completed" if before is None else "Role changed",
        )
        logger.info(
            "Account role updated",
            account_id=account.id,
            old_role=before.value if before else None,
            new_role=role.value,
        )
        return OperationResult.ok(account=account.to_dict())
