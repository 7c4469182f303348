"""Схемы Pydantic для аутентификации."""

from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field


class TokenPayload(BaseModel):
    """
    Payload JWT участника.

    Сервис аутентификации платформы кладет ID участника в стандартный claim "sub".
    Старые токены содержат его в "user_id", они тоже принимаются.
    """

    user_id: UUID = Field(..., validation_alias=AliasChoices("sub", "user_id"), description="ID участника")
    exp: int = Field(..., description="Время истечения токена (Unix timestamp)")
