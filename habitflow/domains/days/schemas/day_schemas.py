"""Day aggregate DTOs and schemas."""

from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

DayStatus = Literal["planned", "in-progress", "completed", "skipped"]


class DayCreate(BaseModel):
    date: date
    habits: List[int] = Field(default_factory=list)
    day_notes: Optional[str] = Field(default=None, max_length=1000)
    mood: Optional[int] = Field(default=None, ge=1, le=5)
    energy: Optional[int] = Field(default=None, ge=1, le=5)
    tags: List[str] = Field(default_factory=list)


class DayUpdate(BaseModel):
    day_notes: Optional[str] = Field(default=None, max_length=1000)
    mood: Optional[int] = Field(default=None, ge=1, le=5)
    energy: Optional[int] = Field(default=None, ge=1, le=5)
    tags: Optional[List[str]] = None
    status: Optional[DayStatus] = None


class DayHabitAdd(BaseModel):
    habit_id: int


class DayHabitCheck(BaseModel):
    completed: bool
    quality: Optional[int] = Field(default=None, ge=1, le=5)
    notes: Optional[str] = Field(default=None, max_length=500)


class DayListFilter(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None
    status: Optional[DayStatus] = None


class CalendarFilter(BaseModel):
    year: int = Field(ge=1970, le=9999)
    month: int = Field(ge=1, le=12)
