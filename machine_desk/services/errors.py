from __future__ import annotations


class MachineDeskError(RuntimeError):
    pass


class MachineNotFoundError(MachineDeskError):
    def __init__(self, machine_id: str | None):
        self.machine_id = machine_id
        label = machine_id if machine_id else "<missing>"
        super().__init__(f"Machine not found: {label}")


class GatewayError(MachineDeskError):
    pass


class PartialWriteError(GatewayError):
    """A multi-step action stopped after some of its writes were applied."""


class ActionValidationError(MachineDeskError):
    pass
