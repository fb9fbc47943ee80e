"""
profile.py
==========
User profile loading, validation and the personalization queries consumed by
the RAG pipeline (context summary, relevance predicate, greeting, working
hours).

The profile file is JSON with camelCase keys:

  {
    "name": "Алексей", "role": "DevOps Engineer", "experience": "5 лет",
    "timezone": "Europe/Moscow",
    "preferences": {"answerStyle": "краткий", "includeRecommendations": true,
                    "technicalLevel": "продвинутый", "useEmoji": false},
    "responsibilities": {"services": ["api-gateway"],
                         "criticalErrors": ["OutOfMemoryError"]},
    "workingHours": {"start": "09:00", "end": "18:00"}
  }

A missing or invalid profile is never fatal for the application: callers
catch ProfileUnavailable / ProfileValidationError and run depersonalized.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_PATH = "./config/profile.json"
ROOT_FIELD = "<root>"

_TYPE_ERROR_SUFFIXES = ("_type", "_parsing")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ProfileUnavailable(RuntimeError):
    """No profile is loaded (file absent, or a profile query before loading)."""


class ProfileValidationError(ValueError):
    """Base class for profile content problems; `field` names the failing field."""

    def __init__(self, message: str, field: str = ROOT_FIELD):
        super().__init__(message)
        self.field = field


class MissingFieldError(ProfileValidationError):
    pass


class FieldTypeError(ProfileValidationError):
    pass


class MalformedProfileError(ProfileValidationError):
    pass


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

class _ProfileModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Preferences(_ProfileModel):
    answer_style: StrictStr
    include_recommendations: StrictBool
    technical_level: StrictStr
    use_emoji: StrictBool


class Responsibilities(_ProfileModel):
    services: List[StrictStr] = Field(default_factory=list)
    critical_errors: List[StrictStr] = Field(default_factory=list)


class WorkingHours(_ProfileModel):
    start: StrictStr
    end: StrictStr


class UserProfile(_ProfileModel):
    name: StrictStr
    role: StrictStr
    experience: StrictStr
    timezone: StrictStr
    preferences: Preferences
    responsibilities: Responsibilities
    working_hours: WorkingHours


def _field_path(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or ROOT_FIELD


def validate_profile(data: Any) -> UserProfile:
    """Validate a decoded JSON document and translate failures to profile errors."""
    if not isinstance(data, dict):
        raise MalformedProfileError("Profile must be an object")

    try:
        return UserProfile.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = _field_path(first.get("loc", ()))
        err_type = first.get("type", "")
        if err_type == "missing":
            raise MissingFieldError(f"Missing required field: {field}", field) from exc
        if err_type.endswith(_TYPE_ERROR_SUFFIXES):
            raise FieldTypeError(f"Invalid type for field {field}: {first.get('msg')}", field) from exc
        raise MalformedProfileError(f"Invalid profile structure at {field}: {first.get('msg')}", field) from exc


def load_profile_file(path: Union[str, Path] = DEFAULT_PROFILE_PATH) -> UserProfile:
    profile_path = Path(path)
    try:
        content = profile_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ProfileUnavailable(f"Profile file not found: {path}") from exc
    except OSError as exc:
        raise ProfileUnavailable(f"Failed to read profile: {exc}") from exc

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise MalformedProfileError(f"Invalid JSON in profile file: {exc}") from exc

    return validate_profile(data)


# ---------------------------------------------------------------------------
# Personalization manager
# ---------------------------------------------------------------------------

def _greeting_for_hour(hour: int) -> str:
    if 5 <= hour < 12:
        return "Доброе утро"
    if 12 <= hour < 18:
        return "Добрый день"
    if 18 <= hour < 23:
        return "Добрый вечер"
    return "Доброй ночи"


class PersonalizationManager:
    """Holds the session's user profile (or nothing, in depersonalized mode)."""

    def __init__(self, profile: Optional[UserProfile] = None):
        self._profile = profile

    def load_profile(self, path: Union[str, Path] = DEFAULT_PROFILE_PATH) -> UserProfile:
        self._profile = load_profile_file(path)
        logger.info("Loaded user profile for %s (%s)", self._profile.name, self._profile.role)
        return self._profile

    def get_profile(self) -> Optional[UserProfile]:
        return self._profile

    def _require_profile(self) -> UserProfile:
        if self._profile is None:
            raise ProfileUnavailable("Profile not loaded. Call load_profile() first.")
        return self._profile

    def get_user_context(self) -> str:
        """Multi-line summary of who the user is, for prompts and profile answers."""
        profile = self._require_profile()
        services = ", ".join(profile.responsibilities.services) or "не указано"
        errors = ", ".join(profile.responsibilities.critical_errors) or "не указано"
        return (
            f"Пользователь: {profile.name}, {profile.role} ({profile.experience})\n"
            f"Ответственность: {services}\n"
            f"Критичные ошибки: {errors}"
        )

    def is_relevant_to_user(self, service_name: str, error_type: str) -> bool:
        """Case-insensitive match against owned services OR critical error types."""
        profile = self._require_profile()
        service = service_name.casefold()
        error = error_type.casefold()

        owns_service = any(s.casefold() == service for s in profile.responsibilities.services)
        is_critical = any(e.casefold() == error for e in profile.responsibilities.critical_errors)
        return owns_service or is_critical

    def get_greeting(self, now: Optional[datetime] = None) -> str:
        profile = self._require_profile()
        hour = (now or datetime.now()).hour
        emoji = " 👋" if profile.preferences.use_emoji else ""
        return f"{_greeting_for_hour(hour)}, {profile.name}!{emoji}"

    def is_working_hours(self, now: Optional[datetime] = None) -> bool:
        """Both bounds inclusive, compared as zero-padded HH:MM strings."""
        profile = self._require_profile()
        current = (now or datetime.now()).strftime("%H:%M")
        return profile.working_hours.start <= current <= profile.working_hours.end
