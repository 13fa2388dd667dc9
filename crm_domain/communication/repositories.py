from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from crm_domain.communication.models import (
    EmailProgram,
    EmailProgramBounce,
    EmailProgramRecipient,
    EmailProgramUnsubscribe,
)
from crm_domain.platform.security.context import TenantContext
from crm_domain.platform.security.repository import BaseRepository


class EmailProgramRepository(BaseRepository[EmailProgram]):
    model = EmailProgram
    resource = "email_programs"


class EmailProgramRecipientRepository(BaseRepository[EmailProgramRecipient]):
    model = EmailProgramRecipient
    resource = "email_program_recipients"

    def find_by_email(self, session: Session, program_id: int, email: str) -> EmailProgramRecipient | None:
        return session.scalar(
            select(EmailProgramRecipient)
            .where(
                EmailProgramRecipient.email_program_id == program_id,
                func.lower(EmailProgramRecipient.email) == email.lower(),
            )
            .order_by(EmailProgramRecipient.id.asc())
            .limit(1)
        )


class EmailProgramBounceRepository(BaseRepository[EmailProgramBounce]):
    model = EmailProgramBounce
    resource = "email_program_bounces"


class EmailProgramUnsubscribeRepository(BaseRepository[EmailProgramUnsubscribe]):
    model = EmailProgramUnsubscribe
    resource = "email_program_unsubscribes"

    def find_by_email(self, session: Session, ctx: TenantContext, email: str) -> EmailProgramUnsubscribe | None:
        return session.scalar(self.base_query(ctx).where(EmailProgramUnsubscribe.email == email.lower()))
