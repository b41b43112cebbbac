"""Piste d'audit / Audit trail sink."""

from sqlalchemy.ext.asyncio import AsyncSession

from rewind.models.audit import AuditLog
from rewind.utils.clock import utcnow_iso


class AuditTrail:
    async def append(
        self,
        session: AsyncSession,
        actor: str,
        action: str,
        entity_type: str,
        entity_id: str,
        summary: str,
    ) -> None:
        """Enregistrer une action dans l'historique / Log an action to audit_logs."""
        session.add(AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            summary=summary,
            actor=actor,
            timestamp=utcnow_iso(),
        ))
