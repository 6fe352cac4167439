"""Closed table of conversation states and the transition function each one owns."""

from claimbot.handlers.claim_status import handle_claim_status
from claimbot.handlers.error import handle_error
from claimbot.handlers.journey_date import handle_journey_date
from claimbot.handlers.journey_stations import handle_journey_stations
from claimbot.handlers.journey_time import handle_journey_time
from claimbot.handlers.menu import handle_menu
from claimbot.handlers.routing import handle_route_confirmation, handle_routing_alternative
from claimbot.handlers.start import handle_start
from claimbot.handlers.terms import handle_terms
from claimbot.handlers.ticket_upload import handle_ticket_upload
from claimbot.handlers.verification import handle_verification_code
from claimbot.services.state_machine import ConversationState, DataPolicy, RegistryEntry, validate_registry

State = ConversationState

HANDLER_TABLE = {
    State.START: RegistryEntry(handle_start, DataPolicy.REPLACE),
    State.AWAITING_TERMS: RegistryEntry(handle_terms, DataPolicy.REPLACE),
    State.AWAITING_OTP: RegistryEntry(handle_verification_code, DataPolicy.REPLACE),
    State.AUTHENTICATED: RegistryEntry(handle_menu, DataPolicy.REPLACE),
    State.AWAITING_JOURNEY_DATE: RegistryEntry(handle_journey_date, DataPolicy.MERGE),
    State.AWAITING_JOURNEY_STATIONS: RegistryEntry(handle_journey_stations, DataPolicy.MERGE),
    State.AWAITING_JOURNEY_TIME: RegistryEntry(handle_journey_time, DataPolicy.MERGE),
    State.AWAITING_JOURNEY_CONFIRM: RegistryEntry(handle_route_confirmation, DataPolicy.MERGE),
    State.AWAITING_ROUTING_CONFIRM: RegistryEntry(handle_route_confirmation, DataPolicy.MERGE),
    State.AWAITING_ROUTING_ALTERNATIVE: RegistryEntry(handle_routing_alternative, DataPolicy.MERGE),
    State.AWAITING_TICKET_UPLOAD: RegistryEntry(handle_ticket_upload, DataPolicy.REPLACE),
    State.AWAITING_CLAIM_STATUS: RegistryEntry(handle_claim_status, DataPolicy.REPLACE),
    State.ERROR: RegistryEntry(handle_error, DataPolicy.REPLACE),
}


def build_registry() -> dict[ConversationState, RegistryEntry]:
    return validate_registry(dict(HANDLER_TABLE))


__all__ = ["HANDLER_TABLE", "build_registry"]
