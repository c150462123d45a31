"""
Allowed status changes for machines and redemption requests.

The tables are only consulted when ENFORCE_STATUS_TRANSITIONS is on; by
default any status may follow any other.
"""
from enum import Enum
from typing import Dict, FrozenSet, Optional

import settings
from models import MachineStatus, RedemptionStatus

MACHINE_TRANSITIONS: Dict[MachineStatus, FrozenSet[MachineStatus]] = {
    MachineStatus.available: frozenset({MachineStatus.assigned, MachineStatus.inactive}),
    MachineStatus.assigned: frozenset(
        {MachineStatus.returned, MachineStatus.available, MachineStatus.inactive}
    ),
    MachineStatus.returned: frozenset(
        {MachineStatus.available, MachineStatus.assigned, MachineStatus.inactive}
    ),
    MachineStatus.inactive: frozenset({MachineStatus.available}),
}

REDEMPTION_TRANSITIONS: Dict[RedemptionStatus, FrozenSet[RedemptionStatus]] = {
    RedemptionStatus.pending: frozenset({RedemptionStatus.approved, RedemptionStatus.rejected}),
    RedemptionStatus.approved: frozenset({RedemptionStatus.released, RedemptionStatus.rejected}),
    RedemptionStatus.released: frozenset(),
    # A rejected request may be reopened
    RedemptionStatus.rejected: frozenset({RedemptionStatus.pending}),
}


def is_allowed(table: Dict, current: Enum, new: Enum) -> bool:
    if current == new:
        return True
    return new in table.get(current, frozenset())


def transition_error(table: Dict, current: Enum, new: Optional[Enum]) -> Optional[str]:
    """
    Message describing why `current -> new` is refused, or None when allowed.
    Always None while enforcement is switched off.
    """
    if new is None or not settings.ENFORCE_STATUS_TRANSITIONS:
        return None
    if is_allowed(table, current, new):
        return None
    return f"Cannot change status from {current.value} to {new.value}"
