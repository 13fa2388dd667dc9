from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


Frequency = Literal["daily", "weekly", "monthly", "yearly"]
ReminderChannel = Literal["database", "mail", "broadcast"]


class TaskRecurrenceDefine(BaseModel):
    frequency: Frequency
    interval: int = Field(default=1, ge=1)
    days_of_week: list[int] | None = None
    starts_on: date
    ends_on: date | None = None
    max_occurrences: int | None = Field(default=None, ge=1)
    timezone: str = Field(default="UTC", min_length=1)
    is_active: bool = True

    @field_validator("days_of_week")
    @classmethod
    def validate_days_of_week(cls, value: list[int] | None) -> list[int] | None:
        if value is None:
            return None
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("days_of_week entries must be between 0 and 6")
        if len(set(value)) != len(value):
            raise ValueError("days_of_week entries must be unique")
        return value

    @model_validator(mode="after")
    def validate_bounds(self) -> "TaskRecurrenceDefine":
        if self.ends_on is not None and self.ends_on < self.starts_on:
            raise ValueError("ends_on must not be before starts_on")
        return self


class TaskRecurrenceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    task_id: int
    frequency: str
    interval: int
    days_of_week: list[int] | None
    starts_on: date
    ends_on: date | None
    max_occurrences: int | None
    timezone: str
    is_active: bool


class TaskReminderCreate(BaseModel):
    user_id: int
    remind_at: datetime
    channel: ReminderChannel = "database"


class TaskReminderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    task_id: int
    user_id: int
    remind_at: datetime
    sent_at: datetime | None
    canceled_at: datetime | None
    channel: str
    status: str
    state: str
