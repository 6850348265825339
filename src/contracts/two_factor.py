"""Two-Factor Contracts - Request/response bodies for the 2FA routes."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class WhatsAppStartRequest(BaseModel):
    """Início do 2FA por WhatsApp."""

    phone: str | None = Field(
        None,
        description="Telefone em formato E.164",
        examples=["+5511999999999"],
    )


class CodeRequest(BaseModel):
    """Código digitado pelo usuário (TOTP ou WhatsApp)."""

    code: str | None = Field(
        None,
        description="Código numérico de 6 dígitos",
        examples=["123456"],
    )


class DisableRequest(BaseModel):
    """Desativação do 2FA: exige a senha atual."""

    password: str | None = Field(
        None,
        validation_alias=AliasChoices("password", "senha"),
        description="Senha atual da conta",
    )

    model_config = ConfigDict(populate_by_name=True)


class TwoFactorStatus(BaseModel):
    enabled: bool
    method: str | None = None


class MessageResponse(BaseModel):
    message: str
