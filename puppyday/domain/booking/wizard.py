"""
Booking wizard state.

Tracks one customer's (or staff member's) progress through the six booking
steps and decides which steps are reachable. The state serializes to a plain
dict so it can be kept in a session store between requests.
"""

import time
from typing import Any, Callable, Optional

from ...shared.dates import get_today_date_string
from .availability import get_next_slot_time

STEP_LABELS = ["Service", "Pet", "Date & Time", "Add-ons", "Review", "Confirmation"]
STEP_SERVICE, STEP_PET, STEP_DATETIME, STEP_ADDONS, STEP_REVIEW, STEP_CONFIRMATION = range(6)
LAST_STEP = STEP_CONFIRMATION

SESSION_TIMEOUT_SECONDS = 30 * 60

BOOKING_MODES = ("customer", "admin", "walk_in")


class BookingWizard:
    """Multi-step booking state with per-mode step gates"""

    def __init__(self, mode: str = "customer", clock: Callable[[], float] = time.time):
        if mode not in BOOKING_MODES:
            raise ValueError(f"Unknown booking mode: {mode}")
        self.mode = mode
        self._clock = clock
        self.reset()

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------

    def reset(self) -> None:
        self.current_step = STEP_SERVICE
        self.selected_customer_id: Optional[str] = None
        self.selected_service = None
        self.selected_pet = None
        self.new_pet_data: Optional[dict] = None
        self.pet_size: Optional[str] = None
        self.selected_date: Optional[str] = None
        self.selected_time_slot: Optional[str] = None
        self.selected_addons: list = []
        self.guest_info: Optional[dict] = None
        self.service_price = 0
        self.addons_total = 0
        self.total_price = 0
        self.booking_id: Optional[str] = None
        self.booking_reference: Optional[str] = None
        self.last_activity = self._clock()

        if self.mode == "walk_in":
            self.selected_date = get_today_date_string()
            self.selected_time_slot = get_next_slot_time()

    def touch(self) -> None:
        self.last_activity = self._clock()

    def is_session_expired(self) -> bool:
        return self._clock() - self.last_activity > SESSION_TIMEOUT_SECONDS

    @property
    def requires_customer(self) -> bool:
        return self.mode in ("admin", "walk_in")

    @property
    def selected_service_id(self) -> Optional[str]:
        return self.selected_service.id if self.selected_service else None

    @property
    def selected_pet_id(self) -> Optional[str]:
        return self.selected_pet.id if self.selected_pet else None

    @property
    def selected_addon_ids(self) -> list[str]:
        return [addon.id for addon in self.selected_addons]

    # ------------------------------------------------------------------
    # navigation
    # ------------------------------------------------------------------

    def set_step(self, step: int) -> bool:
        if not STEP_SERVICE <= step <= LAST_STEP:
            return False
        self.current_step = step
        self.touch()
        return True

    def next_step(self) -> None:
        if self.current_step < LAST_STEP:
            self.current_step += 1
            self.touch()

    def prev_step(self) -> None:
        if self.current_step > STEP_SERVICE:
            self.current_step -= 1
            self.touch()

    def can_navigate_to_step(self, step: int) -> bool:
        if step < self.current_step:
            return True

        has_service = self.selected_service is not None
        has_customer = self.selected_customer_id is not None or not self.requires_customer

        if step == STEP_PET:
            return has_service and has_customer
        if step == STEP_DATETIME:
            return has_service and self.pet_size is not None and has_customer
        if step == STEP_ADDONS:
            return (
                has_service
                and self.pet_size is not None
                and self.selected_date is not None
                and self.selected_time_slot is not None
            )
        if step == STEP_REVIEW:
            return step <= self.current_step
        if step == STEP_CONFIRMATION:
            return self.current_step >= STEP_REVIEW
        return False

    def can_proceed(self) -> bool:
        """Whether the current step has what it needs to move on"""
        step = self.current_step
        if step == STEP_SERVICE:
            return self.selected_service is not None
        if step == STEP_PET:
            has_pet = self.selected_pet is not None or (
                self.new_pet_data is not None and bool(self.new_pet_data.get("size"))
            )
            return has_pet and self.pet_size is not None
        if step == STEP_DATETIME:
            return self.selected_date is not None and self.selected_time_slot is not None
        if step == STEP_ADDONS:
            return True
        if step == STEP_REVIEW:
            return self.selected_customer_id is not None or self.guest_info is not None
        return False

    # ------------------------------------------------------------------
    # selections
    # ------------------------------------------------------------------

    def set_selected_customer(self, customer_id: Optional[str]) -> None:
        if customer_id != self.selected_customer_id:
            self.selected_pet = None
            self.new_pet_data = None
        self.selected_customer_id = customer_id
        self.touch()

    def select_service(self, service) -> None:
        if self.selected_service is not None and self.selected_service.id != service.id:
            # durations differ between services, so a chosen slot may no longer fit
            self.selected_time_slot = None
        self.selected_service = service
        self.touch()
        self.calculate_prices()

    def select_pet(self, pet) -> None:
        self.selected_pet = pet
        self.pet_size = pet.size
        self.new_pet_data = None
        self.touch()
        self.calculate_prices()

    def set_new_pet_data(self, data: Optional[dict]) -> None:
        self.new_pet_data = data
        self.selected_pet = None
        self.pet_size = (data or {}).get("size")
        self.touch()
        self.calculate_prices()

    def set_pet_size(self, size: str) -> None:
        self.pet_size = size
        if self.new_pet_data is not None:
            self.new_pet_data = {**self.new_pet_data, "size": size}
        self.touch()
        self.calculate_prices()

    def clear_pet_selection(self) -> None:
        self.selected_pet = None
        self.new_pet_data = None
        self.pet_size = None
        self.touch()
        self.calculate_prices()

    def select_date_time(self, date_str: str, time_slot: str) -> None:
        self.selected_date = date_str
        self.selected_time_slot = time_slot
        self.touch()

    def clear_date_time(self) -> None:
        self.selected_date = None
        self.selected_time_slot = None
        self.touch()

    def toggle_addon(self, addon) -> None:
        if addon.id in self.selected_addon_ids:
            self.selected_addons = [a for a in self.selected_addons if a.id != addon.id]
        else:
            self.selected_addons = self.selected_addons + [addon]
        self.touch()
        self.calculate_prices()

    def clear_addons(self) -> None:
        self.selected_addons = []
        self.touch()
        self.calculate_prices()

    def set_guest_info(self, info: dict) -> None:
        self.guest_info = info
        self.touch()

    def set_booking_result(self, booking_id: str, reference: str) -> None:
        self.booking_id = booking_id
        self.booking_reference = reference
        self.current_step = STEP_CONFIRMATION
        self.touch()

    def calculate_prices(self) -> None:
        service_price = 0
        if self.selected_service is not None and self.pet_size:
            for price in self.selected_service.prices or []:
                if price.size == self.pet_size:
                    service_price = price.price or 0
                    break

        self.service_price = service_price
        self.addons_total = sum(addon.price for addon in self.selected_addons)
        self.total_price = self.service_price + self.addons_total

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "current_step": self.current_step,
            "step_label": STEP_LABELS[self.current_step],
            "selected_customer_id": self.selected_customer_id,
            "selected_service_id": self.selected_service_id,
            "selected_pet_id": self.selected_pet_id,
            "new_pet_data": self.new_pet_data,
            "pet_size": self.pet_size,
            "selected_date": self.selected_date,
            "selected_time_slot": self.selected_time_slot,
            "selected_addon_ids": self.selected_addon_ids,
            "guest_info": self.guest_info,
            "service_price": self.service_price,
            "addons_total": self.addons_total,
            "total_price": self.total_price,
            "booking_id": self.booking_id,
            "booking_reference": self.booking_reference,
        }
