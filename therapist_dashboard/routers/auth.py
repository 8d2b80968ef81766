# auth router: therapist registration, login, token refresh, current profile
# registration rules follow the sign-up form: matching passwords, min length,
# at least one specialty, license required

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status

from therapist_dashboard.config import settings
from therapist_dashboard.models.user import (
    SPECIALTIES,
    RefreshRequest,
    TherapistRegister,
    TherapistResponse,
    TokenResponse,
    UserLogin,
)
from therapist_dashboard.services.auth_service import (
    decode_token,
    hash_password,
    issue_tokens,
    verify_password,
)
from therapist_dashboard.services.db import Database, get_db
from therapist_dashboard.dependencies import require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


def _validate_registration(body: TherapistRegister) -> None:
    """first failing rule wins, same order as the sign-up form"""
    if body.password != body.confirm_password:
        detail = "Passwords do not match"
    elif len(body.password) < settings.PASSWORD_MIN_LENGTH:
        detail = f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
    elif not body.specialties:
        detail = "Please select at least one specialty"
    elif any(s not in SPECIALTIES for s in body.specialties):
        unknown = ", ".join(s for s in body.specialties if s not in SPECIALTIES)
        detail = f"Unknown specialty: {unknown}"
    elif not body.license.strip():
        detail = "Please enter your license information"
    else:
        return
    raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


def _tokens(user_id: str, role: str) -> TokenResponse:
    access, refresh = issue_tokens(user_id, role)
    return TokenResponse(accessToken=access, refreshToken=refresh)


@router.get("/specialties", response_model=list[str])
async def list_specialties():
    """specialties a therapist can pick at registration"""
    return SPECIALTIES


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_therapist(body: TherapistRegister, db: Database = Depends(get_db)):
    """create a therapist account and sign it in"""
    _validate_registration(body)

    email = body.email.strip().lower()
    if await db.users.find_one({"email": email}):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    # keep the form's order, drop repeated picks
    specialties = list(dict.fromkeys(body.specialties))
    user_doc = {
        "email": email,
        "hashed_password": hash_password(body.password),
        "display_name": body.display_name.strip(),
        "role": "therapist",
        "bio": body.bio.strip(),
        "specialties": specialties,
        "license": body.license.strip(),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }
    result = await db.users.insert_one(user_doc)
    user_id = str(result.inserted_id)
    logger.info(f"Registered therapist {user_id} ({len(specialties)} specialties)")

    return _tokens(user_id, "therapist")


@router.post("/login", response_model=TokenResponse)
async def login(body: UserLogin, db: Database = Depends(get_db)):
    user = await db.users.find_one({"email": body.email.strip().lower()})
    if not user or not verify_password(body.password, user.get("hashed_password", "")):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return _tokens(str(user["_id"]), user.get("role", ""))


@router.post("/refresh", response_model=TokenResponse)
async def refresh_tokens(body: RefreshRequest):
    payload = decode_token(body.refresh_token)
    if payload is None or payload.get("type") != "refresh" or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )
    return _tokens(payload["sub"], payload.get("role", ""))


@router.get("/me", response_model=TherapistResponse)
async def get_me(current_user: dict = Depends(require_role("therapist"))):
    return TherapistResponse(
        id=current_user["id"],
        email=current_user.get("email", ""),
        displayName=current_user.get("display_name", ""),
        bio=current_user.get("bio", ""),
        specialties=current_user.get("specialties", []),
        license=current_user.get("license", ""),
        createdAt=current_user.get("created_at"),
    )
