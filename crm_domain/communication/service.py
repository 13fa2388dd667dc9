from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crm_domain.communication.models import EmailProgramBounce, EmailProgramUnsubscribe
from crm_domain.communication.repositories import (
    EmailProgramBounceRepository,
    EmailProgramRecipientRepository,
    EmailProgramRepository,
    EmailProgramUnsubscribeRepository,
)
from crm_domain.core.database import utcnow
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.errors import PersistenceError
from crm_domain.platform.security.repository import translate_integrity_error
from crm_domain.platform.security.tenancy import validate_tenant_write


logger = logging.getLogger("crm_domain.communication")

BOUNCE_TYPES = ("hard", "soft", "complaint")


@dataclass(slots=True)
class EmailProgramService:
    program_repository: EmailProgramRepository = EmailProgramRepository()
    recipient_repository: EmailProgramRecipientRepository = EmailProgramRecipientRepository()
    bounce_repository: EmailProgramBounceRepository = EmailProgramBounceRepository()
    unsubscribe_repository: EmailProgramUnsubscribeRepository = EmailProgramUnsubscribeRepository()

    def record_bounce(
        self,
        session: Session,
        ctx: TenantContext,
        program_id: int,
        email: str,
        bounce_type: str,
        *,
        bounce_reason: str | None = None,
        diagnostic_code: str | None = None,
        raw_message: dict[str, Any] | None = None,
    ) -> EmailProgramBounce:
        if bounce_type not in BOUNCE_TYPES:
            raise PersistenceError(f"Unknown bounce type '{bounce_type}'")

        program = self.program_repository.get(session, ctx, program_id)
        recipient = self.recipient_repository.find_by_email(session, program.id, email)
        bounce = EmailProgramBounce(
            email_program_id=program.id,
            email_program_recipient_id=recipient.id if recipient is not None else None,
            email=email.lower(),
            bounce_type=bounce_type,
            bounce_reason=bounce_reason,
            diagnostic_code=diagnostic_code,
            raw_message=raw_message,
        )
        session.add(bounce)
        if recipient is not None and recipient.status != "bounced":
            recipient.status = "bounced"
            recipient.bounced_at = utcnow()
            recipient.bounce_type = bounce_type
            recipient.bounce_reason = bounce_reason
        program.total_bounced += 1

        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise translate_integrity_error(self.bounce_repository.resource, exc) from exc

        logger.info(
            "email_program.bounce_recorded",
            extra={"entity": "EmailProgram", "entity_id": program.id, "team_id": ctx.team_id, "operation": "bounce"},
        )
        return bounce

    def unsubscribe(
        self,
        session: Session,
        ctx: TenantContext,
        email: str,
        program_id: int | None = None,
        *,
        reason: str | None = None,
        feedback: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> EmailProgramUnsubscribe:
        """Record an opt-out for the tenant. Repeating it returns the first record unchanged."""

        scope = validate_tenant_write(self.unsubscribe_repository.resource, {}, ctx)
        existing = self.unsubscribe_repository.find_by_email(session, ctx, email)
        if existing is not None:
            return existing

        program = self.program_repository.get(session, ctx, program_id) if program_id is not None else None
        unsubscribe = EmailProgramUnsubscribe(
            team_id=scope["team_id"],
            email=email.lower(),
            email_program_id=program.id if program is not None else None,
            reason=reason,
            feedback=feedback,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        session.add(unsubscribe)
        if program is not None:
            program.total_unsubscribed += 1
            recipient = self.recipient_repository.find_by_email(session, program.id, email)
            if recipient is not None:
                recipient.status = "unsubscribed"
                recipient.unsubscribed_at = utcnow()

        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise translate_integrity_error(self.unsubscribe_repository.resource, exc) from exc
        return unsubscribe

    def is_unsubscribed(self, session: Session, ctx: TenantContext, email: str) -> bool:
        return self.unsubscribe_repository.find_by_email(session, ctx, email) is not None
