"""
Audit recorder - best-effort, append-only audit trail.

Audit logging must never make the primary operation (granting or revoking
an override) fail. Every write failure is therefore caught, logged as an
`audit_write_failed` error event for alerting, and handed to a dead-letter
sink so the missing entry can be replayed.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol
import structlog
from sqlalchemy.orm import Session
from compliance_engine import settings
from compliance_engine.models.audit import AuditLog
from compliance_engine.models.domain import UserProfile

logger = structlog.get_logger()


class DeadLetterSink(Protocol):
    def put(self, entry: Dict[str, Any]) -> None:
        ...


class JsonlDeadLetterSink:
    """Appends failed audit entries to a JSON-lines file."""

    def __init__(self, path):
        self.path = Path(path)

    def put(self, entry: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry, default=str) + "\n")
        except OSError:
            logger.error(
                "audit_dead_letter_failed",
                path=str(self.path),
                action=entry.get("action"),
                entity_id=entry.get("entity_id"),
                exc_info=True,
            )


def default_dead_letter() -> Optional[JsonlDeadLetterSink]:
    if settings.AUDIT_DEAD_LETTER_PATH:
        return JsonlDeadLetterSink(settings.AUDIT_DEAD_LETTER_PATH)
    return None


def _json_safe(values: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if values is None:
        return None
    return json.loads(json.dumps(values, default=str))


class AuditRecorder:
    """Writes AuditLog rows. `log` never raises."""

    def __init__(self, db: Session, dead_letter: Optional[DeadLetterSink] = None):
        self.db = db
        self.dead_letter = dead_letter

    def log(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        organisation_id: Optional[str] = None,
        actor: Optional[UserProfile] = None,
        old_values: Optional[Dict[str, Any]] = None,
        after_values: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Append one entry. Returns False (after logging and dead-lettering) if the write failed."""
        entry: Dict[str, Any] = {
            "action": action,
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "organisation_id": organisation_id,
            "user_id": None,
            "user_email": None,
            "user_name": None,
            "old_values": old_values,
            "after_values": after_values,
            "created_at": datetime.utcnow(),
        }
        try:
            if actor is not None:
                entry["user_id"] = actor.id
                entry["user_email"] = actor.email
                entry["user_name"] = actor.display_name or actor.email
            entry["old_values"] = _json_safe(old_values)
            entry["after_values"] = _json_safe(after_values)
            self.db.add(AuditLog(**entry))
            self.db.commit()
        except Exception:
            logger.error(
                "audit_write_failed",
                action=action,
                entity_type=entity_type,
                entity_id=entry["entity_id"],
                exc_info=True,
            )
            self._rollback()
            if self.dead_letter is not None:
                self.dead_letter.put(entry)
            return False

        logger.info("audit_written", action=action, entity_type=entity_type, entity_id=entry["entity_id"])
        return True

    def entries_for(self, entity_id: str) -> List[AuditLog]:
        """The trail for one entity, oldest first."""
        return self.db.query(AuditLog).filter(
            AuditLog.entity_id == str(entity_id)
        ).order_by(AuditLog.created_at, AuditLog.id).all()

    def _rollback(self) -> None:
        try:
            self.db.rollback()
        except Exception:
            logger.warning("audit_rollback_failed", exc_info=True)
