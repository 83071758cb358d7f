"""CORS configuration for the dashboard and the LIFF booking front-end.

- Development: allows all origins (*)
- Production: restricts to the domains in CORS_ORIGINS
"""

from __future__ import annotations

import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_cors_origins() -> List[str]:
    """Obtém lista de origens permitidas para CORS baseado no ambiente.

    Raises:
        ValueError: Se em produção e CORS_ORIGINS não estiver configurado
    """
    environment = os.getenv("ENVIRONMENT", os.getenv("ENV", "development")).lower()
    raw_origins = os.getenv("CORS_ORIGINS", "").strip()

    if environment in ("production", "prod"):
        if not raw_origins:
            raise ValueError(
                "CORS_ORIGINS must be set in production. "
                "Configure allowed domains separated by commas, e.g.: "
                "CORS_ORIGINS=https://dashboard.example.com,https://liff.example.com"
            )
        origins = _split_origins(raw_origins)
        if not origins:
            raise ValueError("CORS_ORIGINS must contain at least one valid domain in production.")
        return origins

    # Em desenvolvimento uma lista explícita ainda é respeitada
    return _split_origins(raw_origins) or ["*"]


def configure_cors(app: FastAPI) -> None:
    origins = get_cors_origins()

    allow_credentials = os.getenv("CORS_ALLOW_CREDENTIALS", "false").lower() == "true"
    max_age = int(os.getenv("CORS_MAX_AGE", "600"))

    # Com "*" o navegador rejeita credenciais
    if origins == ["*"]:
        allow_credentials = False

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        max_age=max_age,
    )
