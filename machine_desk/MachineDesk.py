import logging
import os

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

load_dotenv()

from db.deps import get_rental_db
from schemas.machines import CheckoutRequest, ConfirmRequest
from services.errors import (
    ActionValidationError,
    GatewayError,
    MachineDeskError,
    MachineNotFoundError,
    PartialWriteError,
)
from services.gateway_service import RentalGateway
from services.presentation_service import build_display, build_page_state
from services.status_service import resolve_machine
from services.workflow_service import checkin_machine, checkout_machine, set_maintenance

app = FastAPI(title="Machine Desk")
LOGGER = logging.getLogger("machine_desk.api")


def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in str(raw).split(",") if item.strip()]


_CORS_ALLOW_ORIGINS = _parse_csv_env(
    "CORS_ALLOW_ORIGINS",
    "http://127.0.0.1,http://localhost,http://127.0.0.1:5001,http://localhost:5001",
)
_CORS_ALLOW_CREDENTIALS = str(os.environ.get("CORS_ALLOW_CREDENTIALS", "true")).strip().lower() in {"1", "true", "yes", "on"}
if "*" in _CORS_ALLOW_ORIGINS:
    # Browsers reject wildcard origins with credentials.
    _CORS_ALLOW_CREDENTIALS = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ALLOW_ORIGINS,
    allow_credentials=_CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_gateway(db: Session = Depends(get_rental_db)) -> RentalGateway:
    return RentalGateway(db)


def _http_error(exc: MachineDeskError) -> HTTPException:
    if isinstance(exc, MachineNotFoundError):
        return HTTPException(status_code=404, detail="Machine not found")
    if isinstance(exc, ActionValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, PartialWriteError):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, GatewayError):
        return HTTPException(status_code=503, detail="The rental database is unavailable. Please try again.")
    return HTTPException(status_code=500, detail="Unexpected error.")


def _machine_payload(gateway: RentalGateway, machine_id: str) -> dict:
    view = resolve_machine(gateway, machine_id)
    return {"machine": view, "display": build_display(view)}


def _action_response(gateway: RentalGateway, machine_id: str, message: str) -> dict:
    try:
        payload = _machine_payload(gateway, machine_id)
    except MachineDeskError as exc:
        LOGGER.warning("Refresh after action failed machine_id=%s error=%s", machine_id, exc)
        return {"message": message, "machine": None, "display": None}
    return {"message": message, **payload}


@app.get("/healthz")
def healthcheck():
    return {"status": "ok"}


@app.get("/api/healthz")
def healthcheck_api(gateway: RentalGateway = Depends(get_gateway)):
    try:
        gateway.ping()
        return {"status": "ok"}
    except GatewayError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@app.get("/api/page")
def get_page(machine_id: str | None = Query(None), gateway: RentalGateway = Depends(get_gateway)):
    try:
        view = resolve_machine(gateway, machine_id)
    except MachineNotFoundError:
        LOGGER.info("Page lookup found no machine machine_id=%s", machine_id)
        return build_page_state(message="Machine not found.")
    except GatewayError as exc:
        LOGGER.error("Page lookup failed machine_id=%s error=%s", machine_id, exc)
        return build_page_state(message="Machine information could not be loaded.")
    return build_page_state(view)


@app.get("/api/machines/{machine_id}")
def get_machine(machine_id: str, gateway: RentalGateway = Depends(get_gateway)):
    try:
        return _machine_payload(gateway, machine_id)
    except MachineDeskError as exc:
        raise _http_error(exc) from exc


@app.post("/api/machines/{machine_id}/checkout")
def checkout(machine_id: str, payload: CheckoutRequest, gateway: RentalGateway = Depends(get_gateway)):
    try:
        message = checkout_machine(gateway, machine_id, payload.to_form())
    except MachineDeskError as exc:
        raise _http_error(exc) from exc
    return _action_response(gateway, machine_id, message)


@app.post("/api/machines/{machine_id}/checkin")
def checkin(machine_id: str, payload: ConfirmRequest, gateway: RentalGateway = Depends(get_gateway)):
    try:
        message = checkin_machine(gateway, machine_id, payload.confirmed)
    except MachineDeskError as exc:
        raise _http_error(exc) from exc
    return _action_response(gateway, machine_id, message)


@app.post("/api/machines/{machine_id}/maintenance")
def maintenance(machine_id: str, payload: ConfirmRequest, gateway: RentalGateway = Depends(get_gateway)):
    try:
        message = set_maintenance(gateway, machine_id, payload.confirmed)
    except MachineDeskError as exc:
        raise _http_error(exc) from exc
    return _action_response(gateway, machine_id, message)


def _name_options(gateway: RentalGateway, table: str, key: str, label: str) -> list[dict]:
    try:
        rows = gateway.select(table, order_by=["name", key])
    except GatewayError as exc:
        raise HTTPException(status_code=503, detail=f"Could not load {table}.") from exc
    return [{label: row[key], "name": row["name"]} for row in rows]


@app.get("/api/customers")
def get_customers(gateway: RentalGateway = Depends(get_gateway)):
    return _name_options(gateway, "customers", "customer_id", "customerID")


@app.get("/api/operators")
def get_operators(gateway: RentalGateway = Depends(get_gateway)):
    return _name_options(gateway, "operators", "operator_id", "operatorID")
