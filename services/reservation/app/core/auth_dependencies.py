import os
from typing import Literal
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from pydantic import BaseModel, ValidationError

# Tokens são emitidos pelo provedor de identidade externo; aqui só validamos
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS512")


class TokenPayload(BaseModel):
    sub: UUID
    tenant_id: UUID
    role: Literal["admin", "staff", "customer"] = "customer"


def get_current_token(
    token: str = Depends(oauth2_scheme),
) -> TokenPayload:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
        return TokenPayload(**payload)
    except (JWTError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Credenciais inválidas",
        )


def ensure_same_tenant(token: TokenPayload, tenant_id: UUID) -> None:
    if token.tenant_id != tenant_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Você não pode acessar dados de outro tenant.",
        )


def require_admin(
    current_token: TokenPayload = Depends(get_current_token),
) -> TokenPayload:
    if current_token.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Apenas administradores podem alterar esta configuração.",
        )
    return current_token


def require_staff(
    current_token: TokenPayload = Depends(get_current_token),
) -> TokenPayload:
    if current_token.role not in ("admin", "staff"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Apenas a equipe do salão pode executar esta ação.",
        )
    return current_token
