from uuid import UUID

import httpx
import jwt
from fastapi import HTTPException, status
from jwt import PyJWKClient

from app.core.config import settings
from app.core.security import AuthUser, extract_bearer_token

SUPPORTED_JWT_ALGS = ["RS256", "ES256", "EdDSA"]
_jwks_client: PyJWKClient | None = None


def _resolve_issuer() -> str:
    if settings.jwt_issuer:
        return settings.jwt_issuer.rstrip("/")
    if not settings.supabase_url:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="supabase auth issuer is not configured",
        )
    return f"{settings.supabase_url.rstrip('/')}/auth/v1"


def _resolve_jwks_url() -> str:
    return f"{_resolve_issuer()}/.well-known/jwks.json"


def _get_jwks_client() -> PyJWKClient:
    global _jwks_client
    if _jwks_client is None:
        _jwks_client = PyJWKClient(_resolve_jwks_url())
    return _jwks_client


def _parse_subject(raw) -> UUID:
    try:
        return UUID(raw)
    except (TypeError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid access token subject",
        ) from exc


def _tenant_and_role(app_metadata) -> tuple[UUID | None, str | None]:
    # Tenant membership and school role are provisioned into app_metadata.
    if not isinstance(app_metadata, dict):
        return None, None
    tenant_id = None
    raw_tenant = app_metadata.get("tenant_id")
    if isinstance(raw_tenant, str):
        try:
            tenant_id = UUID(raw_tenant)
        except ValueError:
            tenant_id = None
    role = app_metadata.get("role")
    return tenant_id, role if isinstance(role, str) else None


def _auth_user_from_payload(user_id_raw, payload: dict) -> AuthUser:
    user_id = _parse_subject(user_id_raw)
    email = payload.get("email")
    user_metadata = payload.get("user_metadata")
    display_name = (
        user_metadata.get("full_name")
        if isinstance(user_metadata, dict)
        else None
    )
    tenant_id, role = _tenant_and_role(payload.get("app_metadata"))

    return AuthUser(
        user_id=user_id,
        email=email if isinstance(email, str) else None,
        display_name=display_name if isinstance(display_name, str) else None,
        tenant_id=tenant_id,
        role=role,
    )


def _auth_user_from_claims(claims: dict) -> AuthUser:
    sub = claims.get("sub")
    if not isinstance(sub, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid access token subject",
        )
    return _auth_user_from_payload(sub, claims)


def _decode_token_with_jwks(token: str) -> AuthUser:
    issuer = _resolve_issuer()
    jwk_client = _get_jwks_client()
    signing_key = jwk_client.get_signing_key_from_jwt(token)
    claims = jwt.decode(
        token,
        signing_key.key,
        algorithms=SUPPORTED_JWT_ALGS,
        audience=settings.jwt_audience,
        issuer=issuer,
        options={"require": ["sub", "exp", "iat"]},
    )
    return _auth_user_from_claims(claims)


async def _fetch_user_from_supabase(token: str) -> AuthUser:
    if not settings.supabase_url:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="supabase auth url is not configured",
        )

    url = f"{settings.supabase_url.rstrip('/')}/auth/v1/user"
    apikey = settings.supabase_anon_key or settings.supabase_service_role_key
    headers = {"Authorization": f"Bearer {token}"}
    if apikey:
        headers["apikey"] = apikey

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(url, headers=headers)
    except httpx.HTTPError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="failed to validate access token",
        ) from exc

    if response.status_code != status.HTTP_200_OK:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid or expired access token",
        )

    payload = response.json()
    return _auth_user_from_payload(payload.get("id"), payload)


async def verify_supabase_access_token(authorization: str | None) -> AuthUser:
    token = extract_bearer_token(authorization)

    # Local JWKS verification first, then the Supabase user endpoint.
    try:
        return _decode_token_with_jwks(token)
    except Exception:
        return await _fetch_user_from_supabase(token)
