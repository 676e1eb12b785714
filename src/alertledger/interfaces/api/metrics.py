from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response

router = APIRouter(prefix="/metrics", tags=["metrics"])

REQUESTS = Counter("al_requests_total", "Total API requests")
LATENCY = Histogram("al_request_latency_seconds", "Request latency")
LEDGER_COMMANDS = Counter(
    "al_ledger_commands_total", "Ledger commands applied", ["system", "command"]
)
LEDGER_FAILURES = Counter(
    "al_ledger_failures_total", "Ledger commands rejected", ["command", "code"]
)
STATUS_RESOLUTIONS = Counter(
    "al_status_resolutions_total", "Operation statuses resolved", ["status"]
)


@router.get("")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
