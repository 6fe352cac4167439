from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from claimbot.services.errors import ConfigurationError, UnhandledHandlerError

if TYPE_CHECKING:
    from claimbot.schemas.webhook import MediaAttachment
    from claimbot.services.journey_service import JourneyClient
    from claimbot.services.station_service import StationClient
    from claimbot.services.user_service import UserRepository
    from claimbot.services.verification_service import VerificationClient


class ConversationState(str, Enum):
    START = "START"
    AWAITING_TERMS = "AWAITING_TERMS"
    AWAITING_OTP = "AWAITING_OTP"
    AUTHENTICATED = "AUTHENTICATED"
    AWAITING_JOURNEY_DATE = "AWAITING_JOURNEY_DATE"
    AWAITING_JOURNEY_STATIONS = "AWAITING_JOURNEY_STATIONS"
    AWAITING_JOURNEY_TIME = "AWAITING_JOURNEY_TIME"
    AWAITING_JOURNEY_CONFIRM = "AWAITING_JOURNEY_CONFIRM"
    AWAITING_ROUTING_CONFIRM = "AWAITING_ROUTING_CONFIRM"
    AWAITING_ROUTING_ALTERNATIVE = "AWAITING_ROUTING_ALTERNATIVE"
    AWAITING_TICKET_UPLOAD = "AWAITING_TICKET_UPLOAD"
    AWAITING_CLAIM_STATUS = "AWAITING_CLAIM_STATUS"
    ERROR = "ERROR"


INITIAL_STATE = ConversationState.START


class DataPolicy(str, Enum):
    """How a handler's state_data combines with the data already in the session."""

    MERGE = "merge"
    REPLACE = "replace"


@dataclass
class OutboxEventDraft:
    aggregate_id: uuid.UUID
    aggregate_type: str
    event_type: str
    payload: dict[str, Any]


@dataclass
class HandlerResult:
    response: str
    next_state: Optional[ConversationState] = None  # None ends the conversation
    state_data: Optional[dict[str, Any]] = None
    events: list[OutboxEventDraft] = field(default_factory=list)

    @property
    def ends_conversation(self) -> bool:
        return self.next_state is None


@dataclass
class ExternalContext:
    """Per-message collaborators and request facts handed to every transition."""

    phone_number: str
    message_sid: str
    correlation_id: str
    users: UserRepository
    verification: VerificationClient
    stations: StationClient
    journeys: JourneyClient
    terms_url: str
    media: list[MediaAttachment] = field(default_factory=list)
    today: Optional[date] = None


@dataclass
class HandlerContext:
    current_state: ConversationState
    input_text: str
    state_data: dict[str, Any]
    external: ExternalContext

    @property
    def token(self) -> str:
        return normalize_input(self.input_text)

    @property
    def phone_number(self) -> str:
        return self.external.phone_number

    @property
    def has_media(self) -> bool:
        return bool(self.external.media)


Handler = Callable[[HandlerContext], Awaitable[HandlerResult]]


@dataclass(frozen=True)
class RegistryEntry:
    handler: Handler
    policy: DataPolicy


def normalize_input(text: Optional[str]) -> str:
    """Trim surrounding whitespace and uppercase for token comparison."""
    return (text or "").strip().upper()


def parse_state(value: Any) -> Optional[ConversationState]:
    try:
        return ConversationState(value)
    except ValueError:
        return None


def validate_registry(registry: dict[ConversationState, RegistryEntry]) -> dict[ConversationState, RegistryEntry]:
    unknown = [key for key in registry if not isinstance(key, ConversationState)]
    if unknown:
        raise ConfigurationError(f"Handler registered for unknown state(s): {unknown}")

    missing = [state.value for state in ConversationState if state not in registry]
    if missing:
        raise ConfigurationError(f"No handler registered for state(s): {', '.join(missing)}")

    for state, entry in registry.items():
        if not callable(entry.handler):
            raise ConfigurationError(f"Handler for {state.value} is not callable")
    return registry


class ConversationEngine:
    """Dispatches a message to the transition function owned by the current state."""

    def __init__(self, registry: dict[ConversationState, RegistryEntry]):
        self._registry = validate_registry(dict(registry))

    def entry_for(self, state: ConversationState) -> RegistryEntry:
        return self._registry[state]

    async def transition(
        self,
        current_state: ConversationState,
        input_text: str,
        session_data: dict[str, Any],
        external: ExternalContext,
    ) -> HandlerResult:
        entry = self.entry_for(current_state)
        context = HandlerContext(
            current_state=current_state,
            input_text=input_text or "",
            state_data=dict(session_data or {}),
            external=external,
        )
        try:
            return await entry.handler(context)
        except Exception as exc:
            raise UnhandledHandlerError(current_state.value, exc) from exc

    def next_session_data(
        self,
        current_state: ConversationState,
        prior_data: dict[str, Any],
        result: HandlerResult,
    ) -> dict[str, Any]:
        """Combine prior session data with the handler's state_data per the state's policy."""
        if result.state_data is None:
            return dict(prior_data)
        if self.entry_for(current_state).policy is DataPolicy.MERGE:
            return {**prior_data, **result.state_data}
        return dict(result.state_data)
