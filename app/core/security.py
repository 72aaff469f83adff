from jose import JWTError, jwt
from app.config import settings
from app.core.exceptions import UnauthorizedException
from app.models.principal import LinkedIdentity, Principal


def decode_jwt(token: str) -> dict:
    """
    Decode and validate JWT token using shared SECRET_KEY.

    Args:
        token: JWT access token from Authorization header

    Returns:
        Decoded token payload with 'sub' (subject id), 'exp', etc.

    Raises:
        UnauthorizedException: If token invalid, expired, or malformed
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])

        # Validate expiration (jose checks this automatically)
        exp = payload.get("exp")
        if exp is None:
            raise UnauthorizedException("Token missing expiration")

        subject_id: str = payload.get("sub")
        if subject_id is None:
            raise UnauthorizedException("Token missing user identifier")

        return payload

    except JWTError as e:
        raise UnauthorizedException(f"Invalid token: {str(e)}")


def extract_principal(token: str) -> Principal:
    """
    Build the authenticated Principal from a JWT.

    Linked identities come from the optional 'identities' claim, a list of
    {"provider": ..., "id": ...} objects. Entries without an id are skipped;
    the remaining order is preserved because resolution stops at first hit.
    """
    payload = decode_jwt(token)

    identities = []
    for raw in payload.get("identities") or []:
        if not isinstance(raw, dict) or not raw.get("id"):
            continue
        identities.append(
            LinkedIdentity(provider=raw.get("provider"), provider_user_id=str(raw["id"]))
        )

    return Principal(
        subject_id=str(payload["sub"]),
        email=payload.get("email"),
        name=payload.get("name"),
        identities=tuple(identities),
    )
