"""
Audit Log Service.

Records audit entries for registry state changes. Workflow services pass
``commit=False`` so the entry lands in the same commit as the change it
describes.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..registry.enums import ActorKind
from ..registry.primitives import generate_ulid, utc_now
from .audit_models import AuditLogModel


class AuditService:
    """Service for managing audit log entries.

    Usage:
        audit = AuditService(db_session)
        audit.log_create("Artwork", artwork.id, artwork.to_dict(), actor_id=account.id)
    """

    def __init__(self, db: Session):
        self.db = db

    def _record(
        self,
        action: str,
        entity_kind: str,
        entity_id: str,
        before: Optional[Dict[str, Any]],
        after: Optional[Dict[str, Any]],
        actor_kind: str,
        actor_id: str,
        note: Optional[str],
        commit: bool,
    ) -> AuditLogModel:
        entry = AuditLogModel(
            id=generate_ulid(),
            ts=utc_now(),
            actor_kind=actor_kind,
            actor_id=actor_id,
            action=action,
            entity_kind=entity_kind,
            entity_id=entity_id,
            before=before,
            after=after,
            note=note,
        )

        self.db.add(entry)
        if commit:
            self.db.commit()
            self.db.refresh(entry)
        return entry

    def log_create(
        self,
        entity_kind: str,
        entity_id: str,
        after: Dict[str, Any],
        actor_kind: str = ActorKind.HUMAN.value,
        actor_id: str = "unknown",
        note: Optional[str] = None,
        commit: bool = True,
    ) -> AuditLogModel:
        """Log the creation of an entity.

        Args:
            entity_kind: Type of entity (e.g., "Artwork", "ArtistProfile")
            entity_id: ID of the entity
            after: State of the entity after creation
            actor_kind: Type of actor ("human", "system")
            actor_id: ID of the acting account
            note: Optional human-readable note
            commit: Commit immediately; pass False to join the caller's commit

        Returns:
            The created AuditLogModel
        """
        return self._record(
            "created", entity_kind, entity_id, None, after,
            actor_kind, actor_id, note, commit,
        )

    def log_update(
        self,
        entity_kind: str,
        entity_id: str,
        before: Dict[str, Any],
        after: Dict[str, Any],
        actor_kind: str = ActorKind.HUMAN.value,
        actor_id: str = "unknown",
        note: Optional[str] = None,
        commit: bool = True,
    ) -> AuditLogModel:
        """Log an update to an entity, capturing both states."""
        return self._record(
            "updated", entity_kind, entity_id, before, after,
            actor_kind, actor_id, note, commit,
        )

    def log_status_change(
        self,
        entity_kind: str,
        entity_id: str,
        old_status: str,
        new_status: str,
        actor_kind: str = ActorKind.HUMAN.value,
        actor_id: str = "unknown",
        note: Optional[str] = None,
        commit: bool = True,
    ) -> AuditLogModel:
        """Log a status change on an entity.

        Args:
            entity_kind: Type of entity (e.g., "Artwork", "ArtistProfileClaim")
            entity_id: ID of the entity
            old_status: Previous status value
            new_status: New status value
            actor_kind: Type of actor ("human", "system")
            actor_id: ID of the acting account
            note: Optional human-readable note; defaults to "old -> new"
            commit: Commit immediately; pass False to join the caller's commit

        Returns:
            The created AuditLogModel
        """
        return self._record(
            "status_changed",
            entity_kind,
            entity_id,
            {"status": old_status},
            {"status": new_status},
            actor_kind,
            actor_id,
            note or f"Status changed: {old_status} -> {new_status}",
            commit,
        )

    def log_link(
        self,
        entity_kind: str,
        entity_id: str,
        linked_kind: str,
        linked_id: str,
        actor_kind: str = ActorKind.HUMAN.value,
        actor_id: str = "unknown",
        note: Optional[str] = None,
        commit: bool = True,
    ) -> AuditLogModel:
        """Log linking two entities together."""
        return self._record(
            "linked",
            entity_kind,
            entity_id,
            None,
            {"linked_kind": linked_kind, "linked_id": linked_id},
            actor_kind,
            actor_id,
            note or f"Linked to {linked_kind}:{linked_id}",
            commit,
        )

    # Query methods

    def query_by_entity(
        self,
        entity_kind: str,
        entity_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogModel]:
        """Get audit history for a specific entity, newest first."""
        return (
            self.db.query(AuditLogModel)
            .filter(
                AuditLogModel.entity_kind == entity_kind,
                AuditLogModel.entity_id == entity_id,
            )
            .order_by(desc(AuditLogModel.ts), desc(AuditLogModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def query_by_actor(
        self,
        actor_id: str,
        actor_kind: str = ActorKind.HUMAN.value,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogModel]:
        """Get all audit entries by a specific actor, newest first."""
        return (
            self.db.query(AuditLogModel)
            .filter(
                AuditLogModel.actor_kind == actor_kind,
                AuditLogModel.actor_id == actor_id,
            )
            .order_by(desc(AuditLogModel.ts), desc(AuditLogModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )
