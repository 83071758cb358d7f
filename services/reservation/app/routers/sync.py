from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.auth_dependencies import TokenPayload, require_admin
from app.schemas.availability_schema import SyncTriggerResponse

router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post("/reservations", response_model=SyncTriggerResponse, status_code=status.HTTP_202_ACCEPTED)
async def trigger_reservation_sync(
    request: Request,
    current_token: TokenPayload = Depends(require_admin),
):
    """Dispara a migração de reservas concluídas para o banco analítico."""
    runner = getattr(request.app.state, "sync_runner", None)
    if runner is None:
        raise HTTPException(503, "Sincronização indisponível nesta instância")

    result = await runner.trigger()
    if result is None:
        return SyncTriggerResponse(accepted=False, state=runner.pipeline.state)
    return SyncTriggerResponse(accepted=True, state=result.state)
