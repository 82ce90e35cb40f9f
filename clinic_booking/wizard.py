from __future__ import annotations

import asyncio
from enum import Enum, auto

from langgraph.graph import END, StateGraph
from pydantic import BaseModel, Field

from clinic_booking.availability import AvailabilityCalculator
from clinic_booking.bookings import BookingManager
from clinic_booking.errors import BookingError, NotFoundError
from clinic_booking.identity import IdentityManager
from clinic_booking.logging_config import get_logger
from clinic_booking.models import BookingRequest
from clinic_booking.reference import ReferenceDataProvider
from clinic_booking.slots import Slot, build_default_slots, match_option, resolve_selection

logger = get_logger(__name__)

NEW_BOOKING_WORDS = ("another", "new", "different")


class SlotState(Enum):
    EMPTY = auto()
    FILLING = auto()
    FILLED = auto()
    CHANGING = auto()


class WizardState(BaseModel):
    """Aggregate conversation state (serialisable)."""

    slot_order: list[str] = Field(default_factory=list)
    slot_values: dict[str, str | None] = Field(default_factory=dict)
    slot_states: dict[str, SlotState] = Field(default_factory=dict)
    current_slot_index: int = 0
    awaiting_slot_input: bool = False
    completed: bool = False
    user_id: str | None = None
    booking_id: str | None = None

    # ─ runtime-only fields (excluded from persistence) ─
    user_message: str | None = None
    response_message: str | None = None
    intent: str | None = None

    model_config = {"arbitrary_types_allowed": True, "extra": "allow"}


RUNTIME_FIELDS = {"user_message", "response_message", "intent"}


class BookingWizard:
    """Wraps a LangGraph state-machine that books through the selection chain, one step per message."""

    def __init__(
        self,
        reference: ReferenceDataProvider,
        availability: AvailabilityCalculator,
        bookings: BookingManager,
        identity: IdentityManager,
    ) -> None:
        self.bookings = bookings
        self.identity = identity
        self.slot_definitions: list[Slot] = build_default_slots(reference, availability)

        self.graph = self._build_graph()
        self.executor = self.graph.compile()

        # in-memory persistence (thread-safe with an asyncio.Lock)
        self._threads: dict[str, dict] = {}
        self._lock = asyncio.Lock()

    def _build_graph(self) -> StateGraph:
        g = StateGraph(WizardState)

        g.add_node("init", self._init_state)
        g.add_node("detect_intent", self._detect_intent)
        g.add_node("prompt_slot", self._prompt_for_slot)
        g.add_node("process_slot", self._process_slot_input)
        g.add_node("complete", self._complete_booking)

        g.set_entry_point("init")
        g.add_edge("init", "detect_intent")

        g.add_conditional_edges(
            "detect_intent",
            self._route_after_intent,
            {"process": "process_slot", "prompt": "prompt_slot", "done": "complete", "end": END},
        )
        g.add_conditional_edges(
            "process_slot",
            self._route_after_processing,
            {"book": "complete", "end": END},
        )

        g.add_edge("prompt_slot", END)
        g.add_edge("complete", END)
        return g

    # ------------------------------------------------------------------ #
    #  Graph nodes
    # ------------------------------------------------------------------ #
    def _init_state(self, state: WizardState) -> WizardState:
        if not state.slot_order:
            state.slot_order = [slot.name for slot in self.slot_definitions]
            self._reset_slots(state, 0)
        return state

    def _detect_intent(self, state: WizardState) -> WizardState:
        """Classify the message: fill the current step, change an earlier one, or start over."""
        msg = (state.user_message or "").strip()
        msg_low = msg.lower()

        if not msg:
            state.intent = "prompt"
            return state

        if state.completed:
            if any(w in msg_low for w in NEW_BOOKING_WORDS):
                self._reset_slots(state, 0)
                state.completed = False
                state.booking_id = None
                state.intent = "prompt"
            else:
                state.intent = "done"
            return state

        if "change" in msg_low and " to " in msg_low and self._apply_change(state, msg_low):
            state.intent = "end"
            return state

        state.intent = "process"
        return state

    def _process_slot_input(self, state: WizardState) -> WizardState:
        current = state.slot_order[state.current_slot_index]
        options = self._options_for_slot(state, current)
        selection = (state.user_message or "").strip()

        matched = match_option(options, selection)
        if not matched:
            state.awaiting_slot_input = True
            state.response_message = (
                f"Sorry, '{selection}' isn't valid for {current}. "
                f"Choices: {', '.join(options)}"
            )
            return state

        state.slot_values[current] = matched
        state.slot_states[current] = SlotState.FILLED
        state.awaiting_slot_input = False

        if state.current_slot_index < len(state.slot_order) - 1:
            state.current_slot_index += 1
            nxt = state.slot_order[state.current_slot_index]
            state.slot_states[nxt] = SlotState.FILLING
            state.awaiting_slot_input = True
            state.response_message = (
                f"Great, {matched} selected for {current}. "
                f"Now choose {nxt}: {', '.join(self._options_for_slot(state, nxt))}"
            )
        return state

    def _prompt_for_slot(self, state: WizardState) -> WizardState:
        current = state.slot_order[state.current_slot_index]
        opts = self._options_for_slot(state, current)
        state.slot_states[current] = SlotState.FILLING
        state.awaiting_slot_input = True
        state.response_message = f"Please select a {current}. Options: {', '.join(opts)}"
        return state

    def _complete_booking(self, state: WizardState) -> WizardState:
        if state.booking_id:
            state.response_message = (
                self._format_completion(state)
                + "\n\nSay 'new' if you'd like to book another appointment."
            )
            return state

        s = state.slot_values
        try:
            booking = self.bookings.create(
                BookingRequest(
                    user_id=state.user_id or "",
                    city_name=s["city"],
                    clinic_name=s["clinic"],
                    specialty_name=s["specialty"],
                    doctor_name=s["doctor"],
                    date=s["date"],
                    turn=s["turn"],
                    time=s["time"],
                )
            )
        except BookingError as exc:
            self._reset_slots(state, state.slot_order.index("date"))
            resolution = resolve_selection(self.slot_definitions, state.slot_values)
            state.slot_values = dict(resolution.selection)
            state.current_slot_index = state.slot_order.index(resolution.next_slot or "date")
            state.awaiting_slot_input = True
            state.response_message = (
                f"Sorry, the booking could not be made: {exc.message}. "
                f"Please select a {state.slot_order[state.current_slot_index]}. "
                f"Options: {', '.join(resolution.options)}"
            )
            return state

        state.booking_id = booking.id
        state.completed = True
        state.awaiting_slot_input = False
        logger.info("wizard_booking_completed", booking_id=booking.id, user_id=state.user_id)
        state.response_message = self._format_completion(state)
        return state

    # ------------------------------------------------------------------ #
    #  Routing
    # ------------------------------------------------------------------ #
    @staticmethod
    def _route_after_intent(state: WizardState) -> str:
        return state.intent or "process"

    @staticmethod
    def _route_after_processing(state: WizardState) -> str:
        if all(state.slot_values.get(name) for name in state.slot_order):
            return "book"
        return "end"

    # ------------------------------------------------------------------ #
    #  Helper utilities
    # ------------------------------------------------------------------ #
    def _options_for_slot(self, state: WizardState, slot_name: str) -> list[str]:
        slot = next(s for s in self.slot_definitions if s.name == slot_name)
        return slot.options(state.slot_values)

    @staticmethod
    def _reset_slots(state: WizardState, start: int) -> None:
        """Clear the slot at ``start`` and every slot after it."""
        for name in state.slot_order[start:]:
            state.slot_values[name] = None
            state.slot_states[name] = SlotState.EMPTY
        state.current_slot_index = start

    def _apply_change(self, state: WizardState, message_lower: str) -> bool:
        """Handle "change <slot> to <value>": set it and reset everything downstream."""
        before_to, after_to = (part.strip() for part in message_lower.split(" to ", 1))

        target_slot = next(
            (
                name
                for name in state.slot_order
                if name in before_to and state.slot_values.get(name) is not None
            ),
            None,
        )
        if target_slot is None or not after_to:
            return False

        slot_index = state.slot_order.index(target_slot)
        options = self._options_for_slot(state, target_slot)
        new_value = next(
            (o for o in options if o.lower() in after_to or after_to in o.lower()),
            None,
        )
        if not new_value:
            return False

        self._reset_slots(state, slot_index + 1)
        state.slot_values[target_slot] = new_value
        state.slot_states[target_slot] = SlotState.CHANGING

        if slot_index + 1 < len(state.slot_order):
            state.current_slot_index = slot_index + 1
            next_slot = state.slot_order[state.current_slot_index]
            state.awaiting_slot_input = True
            state.response_message = (
                f"Changed {target_slot} to {new_value}. Please select a {next_slot}. "
                f"Options: {', '.join(self._options_for_slot(state, next_slot))}"
            )
        else:
            state.current_slot_index = slot_index
            state.response_message = f"Changed {target_slot} to {new_value}."
        return True

    @staticmethod
    def _format_completion(state: WizardState) -> str:
        s = state.slot_values
        return (
            "✅ Your appointment is booked!\n"
            f"• City: {s['city']}\n"
            f"• Clinic: {s['clinic']}\n"
            f"• Specialty: {s['specialty']}\n"
            f"• Doctor: {s['doctor']}\n"
            f"• Date/Time: {s['date']} {s['time']} ({s['turn']})\n"
            f"• Booking id: {state.booking_id}"
        )

    # ------------------------------------------------------------------ #
    #  Persistence helpers (thread-safe)
    # ------------------------------------------------------------------ #
    async def _load_state(self, thread_id: str) -> WizardState:
        async with self._lock:
            raw = self._threads.get(thread_id)
        return WizardState.model_validate(raw) if raw else WizardState()

    async def _save_state(self, thread_id: str, state: WizardState) -> None:
        serialisable = state.model_dump(exclude=RUNTIME_FIELDS)
        async with self._lock:
            self._threads[thread_id] = serialisable

    async def process_message(self, thread_id: str, user_id: str, message: str) -> str:
        """Run one conversational turn for ``thread_id`` on behalf of ``user_id``."""
        try:
            self.identity.get_by_id(user_id)
        except NotFoundError as exc:
            logger.info("wizard_unknown_user", thread_id=thread_id, user_id=user_id)
            return f"Sorry, {exc.message}. Please log in before booking an appointment."

        state = await self._load_state(thread_id)
        state.user_id = user_id
        state.user_message = message

        result = await asyncio.to_thread(self.executor.invoke, state)
        state = WizardState.model_validate(result)
        await self._save_state(thread_id, state)
        return state.response_message or "Sorry, I didn't get that."
