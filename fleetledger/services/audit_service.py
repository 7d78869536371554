"""Audit service for logging billing lifecycle events."""

from sqlalchemy.orm import Session

from fleetledger.models.audit_log import AuditLog


class AuditService:
    """Service for audit log operations.

    Entries are added to the caller's session and committed with the caller's
    transaction, so a rolled-back commit leaves no audit trail behind.
    """

    @staticmethod
    def log(
        db: Session,
        entity_type: str,
        entity_id: int,
        action: str,
        changes: dict | None = None,
    ) -> AuditLog:
        """Create audit log entry.

        Args:
            db: Database session
            entity_type: Type of entity ("payment", "customer_invoice", etc.)
            entity_id: Primary key of the entity
            action: Action performed ("create", "transaction", etc.)
            changes: Optional JSON snapshot of relevant fields

        Returns:
            Created AuditLog object
        """
        audit = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            changes=changes,
        )
        db.add(audit)
        return audit


__all__ = ["AuditService"]
