from __future__ import annotations

from typing import Any

from services.status_service import AVAILABLE, offered_actions


NOT_AVAILABLE = "N/A"


def _text(value: Any) -> str:
    if value is None or value == "":
        return NOT_AVAILABLE
    return str(value)


def format_capacity(capacity: Any) -> str:
    if capacity is None or capacity == "":
        return NOT_AVAILABLE
    return f"{capacity} tons"


def _rental_panel(rental: dict | None) -> dict[str, Any]:
    if not rental:
        return {"visible": False}
    return {
        "visible": True,
        "rentalID": rental.get("rental_id"),
        "customerName": _text(rental.get("customer_name")),
        "operatorName": _text(rental.get("operator_name")),
        "rentalStart": rental.get("start_date"),
        "rentalEnd": rental.get("expected_return_date"),
    }


def build_display(view: dict[str, Any]) -> dict[str, Any]:
    state = view.get("effective_status") or AVAILABLE
    model_name = view.get("model_name")
    category = view.get("category")
    return {
        "machineTitle": f"{_text(model_name)} - Machine {view.get('machine_id')}",
        "machineID": view.get("machine_id"),
        "serialNumber": _text(view.get("serial_number")),
        "modelName": _text(model_name),
        "category": _text(category),
        "weightCapacity": format_capacity(view.get("capacity")),
        "purchaseDate": view.get("purchase_date"),
        "currentStatus": state,
        "description": (
            f"Model: {_text(model_name)}, Category: {_text(category)}, "
            f"Capacity: {_text(view.get('capacity'))} tons"
        ),
        "statusBadge": {"text": state, "cssClass": f"status-badge {state.lower()}"},
        "rentalInfo": _rental_panel(view.get("rental_data")),
        "controls": offered_actions(state),
    }


def build_page_state(view: dict[str, Any] | None = None, message: str | None = None) -> dict[str, Any]:
    if view is None:
        return {"view": "error", "message": message or "Machine information could not be loaded."}
    return {"view": "info", "machine": view, "display": build_display(view)}
