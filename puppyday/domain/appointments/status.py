"""
Appointment status workflow.

The transitions below are the only status changes staff can make. Terminal
states can still be reversed (reopen, restore, revert no-show), but only
through an explicit, confirmed transition.
"""

from dataclasses import dataclass

PENDING = "pending"
CONFIRMED = "confirmed"
CHECKED_IN = "checked_in"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
CANCELLED = "cancelled"
NO_SHOW = "no_show"

APPOINTMENT_STATUSES = (PENDING, CONFIRMED, CHECKED_IN, IN_PROGRESS, COMPLETED, CANCELLED, NO_SHOW)
ACTIVE_STATUSES = (PENDING, CONFIRMED, CHECKED_IN, IN_PROGRESS)
TERMINAL_STATUSES = (COMPLETED, CANCELLED, NO_SHOW)

STATUS_LABELS = {
    PENDING: "Pending",
    CONFIRMED: "Confirmed",
    CHECKED_IN: "Checked In",
    IN_PROGRESS: "In Progress",
    COMPLETED: "Completed",
    CANCELLED: "Cancelled",
    NO_SHOW: "No Show",
}

CANCELLATION_REASONS = [
    "Customer request",
    "Schedule conflict",
    "Pet illness",
    "Weather",
    "Groomer unavailable",
    "Duplicate booking",
    "Other",
]


@dataclass(frozen=True)
class StatusTransition:
    from_status: str
    to_status: str
    label: str
    requires_confirmation: bool = False


STATUS_TRANSITIONS = [
    StatusTransition(PENDING, CONFIRMED, "Confirm"),
    StatusTransition(PENDING, CANCELLED, "Cancel", True),
    StatusTransition(CONFIRMED, CHECKED_IN, "Check In"),
    StatusTransition(CONFIRMED, CANCELLED, "Cancel", True),
    StatusTransition(CONFIRMED, NO_SHOW, "Mark No-Show", True),
    StatusTransition(CHECKED_IN, IN_PROGRESS, "Start Grooming"),
    StatusTransition(CHECKED_IN, CANCELLED, "Cancel", True),
    StatusTransition(IN_PROGRESS, COMPLETED, "Mark Complete"),
    StatusTransition(COMPLETED, IN_PROGRESS, "Reopen", True),
    StatusTransition(CANCELLED, PENDING, "Restore", True),
    StatusTransition(NO_SHOW, CONFIRMED, "Revert No-Show", True),
]


def get_allowed_transitions(status: str) -> list[StatusTransition]:
    return [t for t in STATUS_TRANSITIONS if t.from_status == status]


def is_transition_allowed(from_status: str, to_status: str) -> bool:
    return any(t.to_status == to_status for t in get_allowed_transitions(from_status))


def get_status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def is_active_status(status: str) -> bool:
    return status in ACTIVE_STATUSES


def is_terminal_status(status: str) -> bool:
    return status in TERMINAL_STATUSES
