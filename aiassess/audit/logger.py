import logging

from pydantic import BaseModel, Field
from sqlmodel import Session

from aiassess.audit.context import MAX_ID_LENGTH, RequestContext
from aiassess.crud import create_audit_log
from aiassess.models import AuditEvent, AuthUser

logger = logging.getLogger(__name__)


class AuditResult(BaseModel):
    success: bool
    request_id: str | None = Field(default=None, serialization_alias="requestId")


def _rollback_session_safely(session: Session) -> None:
    try:
        session.rollback()
    except Exception as exc:
        logger.warning("Session rollback failed: %s", exc)


class AuditLogger:
    """
    Records create/update/delete actions in the change log.

    With an authenticated user the row carries the caller's id and the
    request metadata (IP, device, session). Without one, or when that write
    fails, a bare row with only the event fields is inserted instead. Every
    call writes exactly one row; nothing is retried or deduplicated.
    """

    def __init__(
        self,
        session: Session,
        *,
        user: AuthUser | None = None,
        context: RequestContext | None = None,
    ):
        self.session = session
        self.user = user
        self.context = context or RequestContext()

    def log_event(self, event: AuditEvent) -> AuditResult:
        if self.user is None:
            logger.warning(
                "No active session for audit logging of %s %s; writing without request metadata",
                event.entity_type,
                event.entity_id,
            )
            return self._log_direct(event)

        try:
            create_audit_log(
                session=self.session,
                event=event,
                user_id=self.user.id,
                metadata=self.context.as_audit_fields(),
            )
        except Exception as exc:
            logger.error(
                "Audit log error for %s %s (request %s): %s",
                event.entity_type,
                event.entity_id,
                self.context.request_id,
                exc,
            )
            _rollback_session_safely(self.session)
            return self._log_direct(event, session_id=self.context.session_id)

        return AuditResult(success=True, request_id=self.context.request_id)

    def log(self, entity_type: str, entity_id: str, action: str, changes: dict | None = None) -> AuditResult:
        return self.log_event(
            AuditEvent(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                changes=changes or {},
            )
        )

    def _log_direct(self, event: AuditEvent, *, session_id: str | None = None) -> AuditResult:
        metadata = {"session_id": session_id} if session_id and len(session_id) <= MAX_ID_LENGTH else None
        try:
            create_audit_log(session=self.session, event=event, metadata=metadata)
        except Exception as exc:
            logger.error("Failed to log audit event %s %s: %s", event.entity_type, event.entity_id, exc)
            _rollback_session_safely(self.session)
            return AuditResult(success=False)
        return AuditResult(success=True)
