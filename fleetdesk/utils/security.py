from jose import JWTError, ExpiredSignatureError, jwt

from fleetdesk.config import settings
from fleetdesk.utils.exceptions import TokenExpiredException, UnauthorizedException


# ─── Identity-service access tokens ───────────────────────────────────────────
# Tokens are minted by Supabase Auth (sign-up, sign-in and refresh live there)
# and signed with the project's JWT secret. This service only verifies them.
def verify_access_token(token: str) -> dict:
    """
    Decode and validate an identity-service access token.

    Signature, ``aud`` and ``exp`` are all checked; ``sub`` must carry the
    profile id. Raises UnauthorizedException (or TokenExpiredException)
    so every failure maps to 401.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            options={"leeway": settings.JWT_LEEWAY_SECONDS},
        )
    except ExpiredSignatureError:
        raise TokenExpiredException()
    except JWTError:
        raise UnauthorizedException("Invalid or malformed token")

    if not payload.get("sub"):
        raise UnauthorizedException("Invalid token payload")
    return payload
