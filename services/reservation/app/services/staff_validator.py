from typing import Optional

import httpx
from fastapi import HTTPException


async def validar_staff_existe(
    staff_service_url: Optional[str],
    org_id: str,
    staff_id: str,
    auth_token: Optional[str] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict:
    """Confirma no diretório de profissionais que o staff pertence ao org."""
    if not staff_service_url:
        return {"id": staff_id, "org_id": org_id}

    url = f"{staff_service_url.rstrip('/')}/orgs/{org_id}/staff/{staff_id}"

    headers = {}
    if auth_token:
        headers["Authorization"] = f"Bearer {auth_token}"

    async with httpx.AsyncClient(transport=transport, timeout=5.0) as client:
        try:
            resp = await client.get(url, headers=headers)
        except httpx.RequestError:
            raise HTTPException(
                status_code=502,
                detail="Erro ao comunicar com o serviço de profissionais",
            )

    if resp.status_code == 404:
        raise HTTPException(
            status_code=404,
            detail="Profissional não encontrado",
        )

    if resp.status_code != 200:
        raise HTTPException(
            status_code=502,
            detail=f"Erro inesperado no serviço de profissionais (status={resp.status_code})",
        )

    data = resp.json()
    if str(data.get("org_id", org_id)) != str(org_id):
        raise HTTPException(400, "Profissional não pertence ao org informado")
    return data
