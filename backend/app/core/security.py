from dataclasses import dataclass
from uuid import UUID

from fastapi import HTTPException, status


@dataclass(slots=True)
class AuthUser:
    user_id: UUID
    email: str | None = None
    display_name: str | None = None
    tenant_id: UUID | None = None
    role: str | None = None


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="missing Authorization header",
        )

    prefix = "Bearer "
    if not authorization.startswith(prefix):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid Authorization header",
        )

    token = authorization[len(prefix) :].strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="missing bearer token",
        )
    return token


def _parse_mock_uuid(raw: str, detail: str) -> UUID:
    try:
        return UUID(raw)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        ) from exc


def parse_mock_bearer_token(authorization: str | None) -> AuthUser:
    """Parse `mock_<user_uuid>` or `mock_<user_uuid>:<tenant_uuid>[:<role>]`."""
    token = extract_bearer_token(authorization)
    if not token.startswith("mock_"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid mock token",
        )

    parts = token.removeprefix("mock_").strip().split(":")
    user_id_raw = parts[0].strip()
    if not user_id_raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid mock token user id",
        )

    user_id = _parse_mock_uuid(user_id_raw, "mock user id must be a valid UUID")
    tenant_id = None
    if len(parts) > 1 and parts[1].strip():
        tenant_id = _parse_mock_uuid(parts[1].strip(), "mock tenant id must be a valid UUID")
    role = parts[2].strip() if len(parts) > 2 and parts[2].strip() else "teacher"

    return AuthUser(
        user_id=user_id,
        email=f"{user_id}@mock.local",
        display_name="Mock User",
        tenant_id=tenant_id,
        role=role,
    )
