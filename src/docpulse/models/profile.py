"""Signed-in user profile models."""

from typing import Any

from pydantic import BaseModel, ConfigDict


class UserProfile(BaseModel):
    """The signed-in user as returned by the user endpoint."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int | str
    username: str = ""
    email: str | None = None
    company_name: str | None = None
    avatar: str | None = None


def profile_form_fields(fields: dict[str, Any]) -> dict[str, str]:
    """Form fields for a profile update, skipping unset values."""
    return {key: str(value) for key, value in fields.items() if value is not None}
