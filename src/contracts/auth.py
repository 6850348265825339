"""Auth Contracts - Login and second-step verification bodies."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class LoginRequest(BaseModel):
    """Credenciais de login."""

    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("password", "senha"),
    )

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Reject values that cannot be an address."""
        if "@" not in v:
            raise ValueError("E-mail inválido")
        return v


class LoginVerifyRequest(BaseModel):
    """Segunda etapa do login com 2FA."""

    twoFactorToken: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)


class AuthUser(BaseModel):
    id: str
    email: str | None = None
    user_type: str | None = None


class LoginResponse(BaseModel):
    """Either a session was opened or a second factor is required."""

    message: str | None = None
    user: AuthUser | None = None
    twoFactorRequired: bool = False
    twoFactorToken: str | None = None
    method: str | None = None
