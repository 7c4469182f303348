"""
Проверка JWT участников (библиотека PyJWT).

Токены выпускает сервис аутентификации платформы, API проверяет подпись,
срок действия и ID участника в payload. `create_access_token` нужен
для локальной разработки и тестов.
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from pydantic import ValidationError

from src.api.core.config import settings
from src.api.core.exceptions import UnauthorizedException
from src.api.core.logging import api_log as log
from src.api.schemas.auth_schema import TokenPayload


def create_access_token(user_id: UUID, expires_delta: timedelta | None = None) -> str:
    """
    Выпускает JWT для участника.

    Args:
        user_id (UUID): ID участника (claim "sub").
        expires_delta (timedelta | None): Время жизни токена.
            По умолчанию JWT_ACCESS_TOKEN_EXPIRE_MINUTES из настроек.

    Returns:
        str: Подписанный токен.
    """
    issued_at = datetime.now(timezone.utc)
    expire = issued_at + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))

    claims = {
        "sub": str(user_id),
        "iat": int(issued_at.timestamp()),
        "exp": int(expire.timestamp()),
    }
    log.debug(f"Выпуск JWT для участника {user_id}, истекает {expire.isoformat()}")

    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_and_decode_token(token: str) -> TokenPayload:
    """
    Проверяет подпись и срок действия токена и извлекает ID участника.

    Raises:
        UnauthorizedException: Токен истек (token_expired), подделан или поврежден (invalid_token)
            либо не содержит корректного ID участника (invalid_token_payload).
    """
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp"]},
        )
        token_payload = TokenPayload.model_validate(claims)

    except ExpiredSignatureError:
        log.info("Отклонен JWT с истекшим сроком действия.")
        raise UnauthorizedException(message="Срок действия токена истек.", error_type="token_expired") from None

    except InvalidTokenError as exc:
        log.warning(f"Отклонен невалидный JWT: {exc}")
        raise UnauthorizedException(message="Невалидный токен.", error_type="invalid_token") from exc

    except ValidationError as exc:
        log.warning(f"В JWT нет корректного ID участника: {exc.errors()}")
        raise UnauthorizedException(
            message="Некорректные данные в токене.", error_type="invalid_token_payload"
        ) from exc

    return token_payload
