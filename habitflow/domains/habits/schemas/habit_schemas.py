"""Habit and completion DTOs and schemas."""

from __future__ import annotations

import datetime as dt
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Category = Literal["health", "productivity", "learning", "mindfulness", "social", "other"]
Frequency = Literal["daily", "weekly", "custom"]
SkipReason = Literal["no-time", "tired", "forgot", "no-motivation", "other"]
Weekday = Literal["mon", "tue", "wed", "thu", "fri", "sat", "sun"]


class HabitCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=4096)
    category: Category = "other"
    color_code: Optional[str] = Field(default=None, max_length=16)
    icon: Optional[str] = Field(default=None, max_length=64)
    frequency: Frequency = "daily"
    required_days: List[Weekday] = Field(default_factory=list)
    target_value: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = Field(default=None, max_length=32)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class HabitUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=4096)
    category: Optional[Category] = None
    color_code: Optional[str] = Field(default=None, max_length=16)
    icon: Optional[str] = Field(default=None, max_length=64)
    frequency: Optional[Frequency] = None
    required_days: Optional[List[Weekday]] = None
    target_value: Optional[float] = Field(default=None, ge=0)
    unit: Optional[str] = Field(default=None, max_length=32)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class CompletionRecord(BaseModel):
    date: date
    completed: bool = True
    quality: Optional[int] = Field(default=None, ge=1, le=5)
    skip_reason: Optional[SkipReason] = None
    skip_reason_text: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=500)


class CompletionToggle(BaseModel):
    # Module-qualified so the field name does not shadow the type.
    date: Optional[dt.date] = None


class CompletionUpdate(BaseModel):
    completed: Optional[bool] = None
    quality: Optional[int] = Field(default=None, ge=1, le=5)
    skip_reason: Optional[SkipReason] = None
    skip_reason_text: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=500)


class CompletionRangeFilter(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None


class MonthFilter(BaseModel):
    month: str = Field(pattern=r"^\d{4}-\d{2}$")


class HeatmapFilter(BaseModel):
    month_offset: int = Field(default=0, ge=-120, le=120)


class TrendFilter(BaseModel):
    days: Optional[int] = Field(default=None, ge=1, le=366)
    period: Literal["week", "month"] = "week"
