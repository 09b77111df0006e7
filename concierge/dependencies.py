"""Request dependencies for FastAPI routes: current user and Twilio signature checks."""

from dataclasses import dataclass

from fastapi import HTTPException, Request
from twilio.request_validator import RequestValidator

from concierge.config import get_settings
from concierge.services.jwt import get_jwt_service


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: str
    email: str | None = None


def get_current_user(request: Request) -> CurrentUser:
    """Extract and validate user from a Bearer token. Raises 401 if invalid."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")

    jwt_service = get_jwt_service()
    payload = jwt_service.decode_token(auth_header[7:])
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return CurrentUser(user_id=str(payload["sub"]), email=payload.get("email"))


async def verify_twilio_signature(request: Request) -> None:
    """Reject webhook requests whose X-Twilio-Signature does not match, when validation is enabled."""
    settings = get_settings()
    if not settings.VALIDATE_TWILIO_SIGNATURE:
        return

    signature = request.headers.get("X-Twilio-Signature", "")
    form = await request.form()
    validator = RequestValidator(settings.TWILIO_AUTH_TOKEN)
    if not validator.validate(str(request.url), dict(form), signature):
        raise HTTPException(status_code=403, detail="Invalid Twilio signature")
