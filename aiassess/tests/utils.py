import uuid

import jwt

from aiassess.core.config import settings


def make_token(user_id: uuid.UUID | None = None, *, role: str = "authenticated", **claims) -> str:
    payload = {
        "sub": str(user_id or uuid.uuid4()),
        "aud": settings.AUTH_JWT_AUDIENCE,
        "role": role,
        "email": "analyst@example.com",
        **claims,
    }
    return jwt.encode(payload, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)


def auth_headers(user_id: uuid.UUID | None = None, *, role: str = "authenticated") -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, role=role)}"}
