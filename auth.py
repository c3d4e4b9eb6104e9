from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException
from starlette.concurrency import run_in_threadpool

from repository import ProfileDirectory, get_directory, resolve_profile_type
from schemas import LoginRequest, ProfileType, RegisterRequest
from security import create_token, hash_password, verify_password

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

VALID_USER_TYPES = ", ".join(t.value for t in ProfileType)
INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_DEACTIVATED = "Account is deactivated. Please contact support."


def _is_verified(user: Dict[str, Any]) -> bool:
    return bool((user.get("verification") or {}).get("isVerified", False))


def _public_user(user: Dict[str, Any], profile_type: ProfileType) -> Dict[str, Any]:
    return {
        "id": str(user["_id"]),
        "username": user.get("username"),
        "email": user.get("email"),
        "userType": profile_type.value,
        "isActive": user.get("isActive"),
        "createdAt": user.get("createdAt"),
        "isVerified": _is_verified(user),
    }


@router.post("/register", status_code=201)
async def register(payload: RegisterRequest, directory: ProfileDirectory = Depends(get_directory)):
    profile_type = resolve_profile_type(payload.userType)
    if profile_type is None:
        raise HTTPException(400, f"Invalid user type. Must be one of: {VALID_USER_TYPES}")

    email = payload.email.lower()
    username = payload.username.lower()

    # uniqueness spans all four collections; not atomic with the insert below
    checks = await directory.gather(lambda repo: repo.exists_identity(email, username))
    if any(found for _, found in checks):
        logger.info("registration_conflict", profile_type=profile_type.value)
        raise HTTPException(409, "User with this email or username already exists. Please Login.")

    password_hash = await run_in_threadpool(hash_password, payload.password)
    user = await run_in_threadpool(
        directory[profile_type].insert,
        username=username,
        email=email,
        password=password_hash,
        userType=profile_type,
    )

    label = profile_type.value[:1].upper() + profile_type.value[1:]
    return {
        "success": True,
        "message": f"{label} registered successfully",
        "token": create_token(user["_id"], profile_type),
        "data": _public_user(user, profile_type),
    }


@router.post("/login")
async def login(payload: LoginRequest, directory: ProfileDirectory = Depends(get_directory)):
    email = payload.email.lower()
    profile_type, user = await directory.first_match(lambda repo: repo.find_one({"email": email}))
    if user is None:
        raise HTTPException(401, INVALID_CREDENTIALS)

    if user.get("isDeactivated"):
        logger.info("login_rejected_deactivated", profile_type=profile_type.value)
        raise HTTPException(401, ACCOUNT_DEACTIVATED)

    valid = await run_in_threadpool(verify_password, payload.password, user.get("password") or "")
    if not valid:
        raise HTTPException(401, INVALID_CREDENTIALS)

    data = _public_user(user, profile_type)
    data["profile"] = user.get("profile") or user.get("business") or {}
    if profile_type is ProfileType.SPA:
        data["business"] = user.get("business") or {}

    return {
        "success": True,
        "message": "Login successful",
        "token": create_token(user["_id"], profile_type),
        "data": data,
    }
