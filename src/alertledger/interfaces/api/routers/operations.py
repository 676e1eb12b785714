# src/alertledger/interfaces/api/routers/operations.py

from fastapi import APIRouter, Depends

from alertledger.application.services import StatusService
from alertledger.domain.entities import Operation, utcnow
from alertledger.interfaces.api.deps import get_status_service, require_api_key
from alertledger.interfaces.api.metrics import STATUS_RESOLUTIONS
from alertledger.interfaces.api.schemas import OperationsStatusIn, OperationStatusOut

router = APIRouter(prefix="/operations", tags=["Operations"], dependencies=[Depends(require_api_key)])


@router.post("/status")
def resolve_statuses(
    payload: OperationsStatusIn,
    status_service: StatusService = Depends(get_status_service),
):
    """Labels posted operation documents (linked alert populated under `alertId`)."""
    now = payload.now or utcnow()
    operations = [Operation.from_record(raw) for raw in payload.operations]
    labelled = status_service.label_operations(operations, now)

    rows = []
    for op, status in labelled:
        STATUS_RESOLUTIONS.labels(status=status.value).inc()
        rows.append(OperationStatusOut(id=op.id, ticker=op.ticker, status=status.value))
    counts = {status.value: n for status, n in status_service.tally(labelled).items()}
    return {"operations": rows, "counts": counts}
