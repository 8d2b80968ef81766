# user models: therapist registration, login and token schemas

from typing import Optional, Literal
from pydantic import BaseModel, Field

SPECIALTIES = [
    "Anxiety",
    "Depression",
    "Trauma",
    "Relationships",
    "Addiction",
    "Grief",
    "Stress",
    "LGBTQ+",
    "Family",
    "Career",
]


# auth

class TherapistRegister(BaseModel):
    """therapist sign-up form. cross-field rules are checked by the router
    so each failure reports its own message"""
    email: str = Field(..., min_length=3, description="therapist email address")
    password: str
    confirm_password: str = Field(..., alias="confirmPassword")
    display_name: str = Field(..., min_length=1, alias="displayName")
    bio: str = ""
    specialties: list[str] = Field(default_factory=list)
    license: str = ""

    model_config = {"populate_by_name": True}


class UserLogin(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")
    token_type: str = "bearer"

    model_config = {"populate_by_name": True}


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., alias="refreshToken")

    model_config = {"populate_by_name": True}


# user responses

class TherapistResponse(BaseModel):
    id: str
    email: str
    display_name: str = Field(..., alias="displayName")
    role: Literal["therapist"] = "therapist"
    bio: str = ""
    specialties: list[str] = Field(default_factory=list)
    license: str = ""
    created_at: Optional[str] = Field(None, alias="createdAt")

    model_config = {"populate_by_name": True}
