from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
from httpx import AsyncClient
from starlette import status

from src.api.core.config import settings
from src.api.core.security import create_access_token
from src.api.models import Profile


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def test_expired_token_is_rejected(test_client: AsyncClient, lider: Profile):
    token = create_access_token(lider.id, expires_delta=timedelta(minutes=-1))

    response = await test_client.get("/api/v1/users/me", headers=bearer(token))

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"]["error_type"] == "token_expired"


async def test_token_signed_with_other_key_is_rejected(test_client: AsyncClient, lider: Profile):
    expire = int((datetime.now(timezone.utc) + timedelta(minutes=5)).timestamp())
    token = jwt.encode({"sub": str(lider.id), "exp": expire}, "other-secret", algorithm=settings.JWT_ALGORITHM)

    response = await test_client.get("/api/v1/users/me", headers=bearer(token))

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"]["error_type"] == "invalid_token"


async def test_token_with_user_id_claim_is_accepted(test_client: AsyncClient, lider: Profile):
    """Токены старого формата хранят ID участника в "user_id" вместо "sub"."""
    expire = int((datetime.now(timezone.utc) + timedelta(minutes=5)).timestamp())
    token = jwt.encode(
        {"user_id": str(lider.id), "exp": expire}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )

    response = await test_client.get("/api/v1/users/me", headers=bearer(token))

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["id"] == str(lider.id)


async def test_token_without_participant_id_is_rejected(test_client: AsyncClient):
    expire = int((datetime.now(timezone.utc) + timedelta(minutes=5)).timestamp())
    token = jwt.encode({"sub": "not-a-uuid", "exp": expire}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    response = await test_client.get("/api/v1/users/me", headers=bearer(token))

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"]["error_type"] == "invalid_token_payload"


async def test_token_of_unknown_participant_is_rejected(test_client: AsyncClient):
    token = create_access_token(uuid4())

    response = await test_client.get("/api/v1/users/me", headers=bearer(token))

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"]["error_type"] == "token_user_not_found"
