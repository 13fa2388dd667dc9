from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


MergeRelation = Literal[
    "emails",
    "addresses",
    "notes",
    "companies",
    "groups",
    "roles",
    "territories",
    "opportunities",
    "orders",
    "invoices",
    "quotes",
]

MERGEABLE_FIELDS: tuple[str, ...] = (
    "name",
    "primary_email",
    "alternate_email",
    "phone_mobile",
    "phone_office",
    "phone_home",
    "phone_fax",
    "job_title",
    "department",
    "role",
    "persona_id",
    "reports_to_id",
    "birthdate",
    "lead_source",
    "social_links",
    "segments",
)


class FieldChange(BaseModel):
    previous: Any = None
    value: Any = None
    source: Literal["duplicate", "override"]


class MergeData(BaseModel):
    """Payload stored on a merge log; enough to audit or reverse the merge."""

    model_config = ConfigDict(extra="forbid")

    fields: dict[str, FieldChange] = Field(default_factory=dict)
    relations: dict[MergeRelation, list[int]] = Field(default_factory=dict)
    dropped: dict[MergeRelation, list[dict[str, Any]]] = Field(default_factory=dict)
    demoted_primary_links: list[int] = Field(default_factory=list)
    duplicate_snapshot: dict[str, Any]

    @model_validator(mode="after")
    def validate_fields(self) -> "MergeData":
        unknown = sorted(set(self.fields) - set(MERGEABLE_FIELDS))
        if unknown:
            raise ValueError(f"fields not mergeable: {', '.join(unknown)}")
        return self


class ContactMergeLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    team_id: int
    primary_contact_id: int
    duplicate_contact_id: int
    merged_by: int | None
    merge_data: dict[str, Any]
    created_at: datetime


class CompanyPersonRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    company_id: int
    people_id: int
    is_primary: bool
    role: str | None
