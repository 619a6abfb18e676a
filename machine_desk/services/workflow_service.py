from __future__ import annotations

import logging
from datetime import date
from typing import Any

from services.errors import ActionValidationError, GatewayError, PartialWriteError
from services.status_service import RENTAL_ACTIVE, RENTAL_COMPLETED, fetch_machine


WORKFLOW_LOGGER = logging.getLogger("machine_desk.workflow")

CHECKOUT_MACHINE_STATUS = "Rented"
CHECKIN_MACHINE_STATUS = "Available"
MAINTENANCE_MACHINE_STATUS = "maintenance"

CHECKOUT_REQUIRED_FIELDS = (
    ("customer_id", "customer"),
    ("operator_id", "operator"),
    ("start_date", "start date"),
    ("expected_return_date", "expected return date"),
)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_checkout(form: dict[str, Any]) -> dict[str, Any]:
    missing = [label for key, label in CHECKOUT_REQUIRED_FIELDS if _is_blank(form.get(key))]
    if missing:
        raise ActionValidationError(f"Please fill in all required fields: {', '.join(missing)}.")
    return {key: form[key] for key, _ in CHECKOUT_REQUIRED_FIELDS}


def _require_confirmation(confirmed: bool, action: str) -> None:
    if not confirmed:
        raise ActionValidationError(f"{action} was not confirmed.")


def checkout_machine(gateway, machine_id: str, form: dict[str, Any]) -> str:
    fields = validate_checkout(form)
    machine = fetch_machine(gateway, machine_id)
    key = machine["machine_id"]

    rental = gateway.insert(
        "rentals",
        {
            "machine_id": key,
            "customer_id": fields["customer_id"],
            "operator_id": fields["operator_id"],
            "start_date": fields["start_date"],
            "expected_return_date": fields["expected_return_date"],
            "rental_status": RENTAL_ACTIVE,
        },
    )

    try:
        gateway.update("machines", {"machine_id": key}, {"status": CHECKOUT_MACHINE_STATUS})
    except GatewayError as exc:
        WORKFLOW_LOGGER.error(
            "Checkout left machine status stale machine_id=%s rental_id=%s error=%s",
            key,
            rental.get("rental_id"),
            exc,
        )
        raise PartialWriteError(
            f"Rental {rental.get('rental_id')} was recorded but the machine status could not be updated: {exc}"
        ) from exc

    WORKFLOW_LOGGER.info("Checkout machine_id=%s rental_id=%s", key, rental.get("rental_id"))
    return "Machine checked out successfully!"


def checkin_machine(gateway, machine_id: str, confirmed: bool, today: date | None = None) -> str:
    _require_confirmation(confirmed, "Check-in")
    machine = fetch_machine(gateway, machine_id)
    key = machine["machine_id"]
    return_date = today or date.today()

    try:
        completed = gateway.update(
            "rentals",
            {"machine_id": key, "rental_status": RENTAL_ACTIVE},
            {"rental_status": RENTAL_COMPLETED, "actual_return_date": return_date},
        )
        WORKFLOW_LOGGER.info("Check-in completed rentals machine_id=%s count=%s", key, len(completed))
    except GatewayError as exc:
        # The machine is still returned to service below.
        WORKFLOW_LOGGER.error("Check-in rental update failed machine_id=%s error=%s", key, exc)

    gateway.update("machines", {"machine_id": key}, {"status": CHECKIN_MACHINE_STATUS})
    WORKFLOW_LOGGER.info("Check-in machine_id=%s", key)
    return "Machine checked in successfully!"


def set_maintenance(gateway, machine_id: str, confirmed: bool) -> str:
    _require_confirmation(confirmed, "Maintenance")
    machine = fetch_machine(gateway, machine_id)
    key = machine["machine_id"]
    gateway.update("machines", {"machine_id": key}, {"status": MAINTENANCE_MACHINE_STATUS})
    WORKFLOW_LOGGER.info("Maintenance machine_id=%s", key)
    return "Machine marked for maintenance."
