from __future__ import annotations

import logging
from typing import Any

from services.errors import GatewayError, MachineNotFoundError


RESOLVER_LOGGER = logging.getLogger("machine_desk.resolver")

AVAILABLE = "Available"
RENTED = "Rented"
MAINTENANCE = "Maintenance"
MACHINE_STATES = {AVAILABLE, RENTED, MAINTENANCE}

# Raw machine status text seen in the wild, lowercased.
STATUS_ALIASES = {
    "available": AVAILABLE,
    "free": AVAILABLE,
    "rented": RENTED,
    "in use": RENTED,
    "maintenance": MAINTENANCE,
    "under maintenance": MAINTENANCE,
    "in maintenance": MAINTENANCE,
}

RENTAL_ACTIVE = "Active"
RENTAL_COMPLETED = "Completed"

ACTIONS_BY_STATE = {
    AVAILABLE: ["checkout", "maintenance"],
    RENTED: ["checkin", "maintenance"],
    MAINTENANCE: ["checkin"],
}


def normalize_machine_state(raw: str | None) -> str:
    key = " ".join((raw or "").strip().lower().split())
    return STATUS_ALIASES.get(key, AVAILABLE)


def derive_effective_state(raw_status: str | None, active_rental: dict | None) -> str:
    if active_rental is not None:
        return RENTED
    if normalize_machine_state(raw_status) == MAINTENANCE:
        return MAINTENANCE
    return AVAILABLE


def offered_actions(state: str) -> list[str]:
    return list(ACTIONS_BY_STATE.get(state, ACTIONS_BY_STATE[AVAILABLE]))


def fetch_machine(gateway, machine_id: str | None) -> dict[str, Any]:
    key = (machine_id or "").strip()
    if not key:
        raise MachineNotFoundError(machine_id)
    rows = gateway.select("machines", {"machine_id": key}, limit=1)
    if not rows:
        raise MachineNotFoundError(key)
    return rows[0]


def _fetch_model(gateway, model_id) -> dict[str, Any] | None:
    if model_id is None:
        return None
    try:
        rows = gateway.select("model", {"model_id": model_id}, limit=1)
    except GatewayError as exc:
        RESOLVER_LOGGER.warning("Model lookup failed model_id=%s error=%s", model_id, exc)
        return None
    if not rows:
        RESOLVER_LOGGER.warning("Model not found model_id=%s", model_id)
        return None
    return rows[0]


def _lookup_name(gateway, table: str, key: str, value) -> str | None:
    if value is None:
        return None
    try:
        rows = gateway.select(table, {key: value}, limit=1)
    except GatewayError as exc:
        RESOLVER_LOGGER.warning("Name lookup failed table=%s %s=%s error=%s", table, key, value, exc)
        return None
    return rows[0].get("name") if rows else None


def fetch_active_rental(gateway, machine_id: str) -> dict[str, Any] | None:
    """Return the machine's Active rental with customer/operator names, or None.

    Lookup failures count as "no active rental". When several Active rows
    exist the newest start date wins, then the highest rental id.
    """
    try:
        rows = gateway.select(
            "rentals",
            {"machine_id": machine_id, "rental_status": RENTAL_ACTIVE},
            order_by=["-start_date", "-rental_id"],
        )
    except GatewayError as exc:
        RESOLVER_LOGGER.warning("Active rental lookup failed machine_id=%s error=%s", machine_id, exc)
        return None
    if not rows:
        return None
    if len(rows) > 1:
        RESOLVER_LOGGER.warning(
            "Multiple active rentals machine_id=%s rental_ids=%s using=%s",
            machine_id,
            [row.get("rental_id") for row in rows],
            rows[0].get("rental_id"),
        )

    rental = dict(rows[0])
    rental["customer_name"] = _lookup_name(gateway, "customers", "customer_id", rental.get("customer_id"))
    rental["operator_name"] = _lookup_name(gateway, "operators", "operator_id", rental.get("operator_id"))
    return rental


def resolve_machine(gateway, machine_id: str | None) -> dict[str, Any]:
    machine = fetch_machine(gateway, machine_id)
    model = _fetch_model(gateway, machine.get("model_id"))
    rental = fetch_active_rental(gateway, machine["machine_id"])

    view = {**machine, **(model or {})}
    view["rental_data"] = rental
    view["is_rented"] = rental is not None
    view["effective_status"] = derive_effective_state(machine.get("status"), rental)
    return view
