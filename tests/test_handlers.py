import asyncio
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

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
from claimbot.schemas.webhook import MediaAttachment
from claimbot.services.errors import DependencyError, DependencyTimeoutError
from claimbot.services.station_service import Station
from claimbot.services.verification_service import VerificationCheck
from claimbot.services.state_machine import ConversationState as State

SENDER = "+447700900123"
USER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
JOURNEY_ID = "22222222-2222-2222-2222-222222222222"

DIRECT_ROUTE = {
    "legs": [{"from": "KGX", "to": "EDB", "operator": "LNER", "departure": "10:00", "arrival": "14:20"}],
    "isDirect": True,
    "interchangeStation": None,
    "totalDuration": "4h 20m",
}
INTERCHANGE_ROUTE = {
    "legs": [
        {"from": "PAD", "to": "BRI", "operator": "GWR", "departure": "10:00", "arrival": "11:30"},
        {"from": "BRI", "to": "CDF", "operator": "GWR", "departure": "11:45", "arrival": "12:15"},
    ],
    "isDirect": False,
    "interchangeStation": "BRI",
    "totalDuration": "2h 15m",
}
CAPTURED = {
    "journeyId": JOURNEY_ID,
    "travelDate": "2024-11-15",
    "origin": "KGX",
    "destination": "EDB",
    "originName": "London Kings Cross",
    "destinationName": "Edinburgh",
    "departureTime": "10:00",
}


def _user(verified=False):
    return SimpleNamespace(
        id=USER_ID,
        phone_number=SENDER,
        verified_at=datetime(2024, 11, 1, tzinfo=timezone.utc) if verified else None,
    )


def run(handler, ctx):
    return asyncio.run(handler(ctx))


class TestStartHandler:
    def test_new_sender_is_registered(self, make_context, users):
        users.create.return_value = _user()

        result = run(handle_start, make_context(State.START, "Hello"))

        users.create.assert_called_once_with(SENDER)
        assert result.next_state == State.AWAITING_TERMS
        assert "YES" in result.response and "TERMS" in result.response
        assert [event.event_type for event in result.events] == ["user.registered"]
        payload = result.events[0].payload
        assert payload["user_id"] == str(USER_ID)
        assert payload["correlation_id"] == "corr-test"
        assert payload["causation_id"] == "SM-test"

    def test_verified_user_gets_menu(self, make_context, users):
        users.find_by_phone.return_value = _user(verified=True)

        result = run(handle_start, make_context(State.START, "hi"))

        assert result.next_state == State.AUTHENTICATED
        assert "Welcome back" in result.response
        assert result.events == []

    def test_unverified_user_resumes_verification(self, make_context, users):
        users.find_by_phone.return_value = _user()

        result = run(handle_start, make_context(State.START, "hi"))

        assert result.next_state == State.AWAITING_TERMS
        users.create.assert_not_called()

    def test_invalid_number_stays_at_start(self, make_context, users):
        users.create.side_effect = ValueError("bad number")

        result = run(handle_start, make_context(State.START, "hi"))

        assert result.next_state == State.START
        assert result.events == []


class TestTermsHandler:
    def test_yes_starts_verification(self, make_context, verification):
        result = run(handle_terms, make_context(State.AWAITING_TERMS, " yes "))

        verification.start.assert_awaited_once_with(SENDER)
        assert result.next_state == State.AWAITING_OTP
        assert "6-digit code" in result.response
        assert result.state_data["verificationStarted"] is True

    def test_terms_shows_link_and_stays(self, make_context):
        result = run(handle_terms, make_context(State.AWAITING_TERMS, "TERMS"))

        assert result.next_state == State.AWAITING_TERMS
        assert "https://railrepay.co.uk/terms" in result.response

    def test_no_ends_conversation(self, make_context):
        result = run(handle_terms, make_context(State.AWAITING_TERMS, "no"))
        assert result.ends_conversation is True

    def test_unrecognized_lists_options(self, make_context):
        result = run(handle_terms, make_context(State.AWAITING_TERMS, "maybe"))

        assert result.next_state == State.AWAITING_TERMS
        assert "YES" in result.response and "NO" in result.response and "TERMS" in result.response

    def test_verification_timeout_stays(self, make_context, verification):
        verification.start.side_effect = DependencyTimeoutError("verification", "request timed out")

        result = run(handle_terms, make_context(State.AWAITING_TERMS, "YES"))

        assert result.next_state == State.AWAITING_TERMS
        assert "try again" in result.response


class TestVerificationHandler:
    def test_approved_code_verifies_user(self, make_context, users, verification):
        user = _user()
        users.find_by_phone.return_value = user
        users.mark_verified.side_effect = lambda u: setattr(u, "verified_at", datetime.now(timezone.utc)) or u

        result = run(handle_verification_code, make_context(State.AWAITING_OTP, "123456"))

        verification.check.assert_awaited_once_with(SENDER, "123456")
        users.mark_verified.assert_called_once_with(user)
        assert result.next_state == State.AUTHENTICATED
        assert [event.event_type for event in result.events] == ["user.verified"]

    def test_bad_format_counts_attempt(self, make_context, verification):
        result = run(handle_verification_code, make_context(State.AWAITING_OTP, "12ab", {"attemptCount": 0}))

        verification.check.assert_not_awaited()
        assert result.next_state == State.AWAITING_OTP
        assert result.state_data["attemptCount"] == 1

    def test_rejected_code_on_third_attempt_locks_out(self, make_context, users, verification):
        users.find_by_phone.return_value = _user()
        verification.check.return_value = VerificationCheck(approved=False, status="pending")

        result = run(handle_verification_code, make_context(State.AWAITING_OTP, "654321", {"attemptCount": 2}))

        assert result.ends_conversation is True
        assert result.events == []

    def test_resend_restarts_verification(self, make_context, verification):
        result = run(handle_verification_code, make_context(State.AWAITING_OTP, "resend", {"attemptCount": 1}))

        verification.start.assert_awaited_once_with(SENDER)
        assert result.next_state == State.AWAITING_OTP
        assert result.state_data["attemptCount"] == 1

    def test_provider_failure_does_not_count_attempt(self, make_context, users, verification):
        users.find_by_phone.return_value = _user()
        verification.check.side_effect = DependencyError("verification", "unexpected status 500")

        result = run(handle_verification_code, make_context(State.AWAITING_OTP, "123456", {"attemptCount": 1}))

        assert result.next_state == State.AWAITING_OTP
        assert result.state_data is None


class TestMenuHandler:
    def test_delay_any_case_starts_journey(self, make_context):
        result = run(handle_menu, make_context(State.AUTHENTICATED, "dElAy"))

        assert result.next_state == State.AWAITING_JOURNEY_DATE
        assert "When did you travel" in result.response
        assert uuid.UUID(result.state_data["journeyId"])

    def test_claim_is_alias_for_delay(self, make_context):
        assert run(handle_menu, make_context(State.AUTHENTICATED, "claim")).next_state == State.AWAITING_JOURNEY_DATE

    def test_status_opens_claim_status(self, make_context):
        assert run(handle_menu, make_context(State.AUTHENTICATED, "STATUS")).next_state == State.AWAITING_CLAIM_STATUS

    def test_logout_ends_conversation(self, make_context):
        assert run(handle_menu, make_context(State.AUTHENTICATED, "logout")).ends_conversation is True

    def test_unrecognized_stays_with_options(self, make_context):
        result = run(handle_menu, make_context(State.AUTHENTICATED, "what?"))

        assert result.next_state == State.AUTHENTICATED
        for option in ("DELAY", "STATUS", "HELP", "LOGOUT"):
            assert option in result.response


class TestClaimStatusHandler:
    def test_menu_returns_to_authenticated(self, make_context):
        assert run(handle_claim_status, make_context(State.AWAITING_CLAIM_STATUS, "menu")).next_state == State.AUTHENTICATED

    def test_unrecognized_stays(self, make_context):
        result = run(handle_claim_status, make_context(State.AWAITING_CLAIM_STATUS, "??"))
        assert result.next_state == State.AWAITING_CLAIM_STATUS
        assert "MENU" in result.response


class TestJourneyDateHandler:
    def test_valid_date_moves_to_stations(self, make_context):
        result = run(handle_journey_date, make_context(State.AWAITING_JOURNEY_DATE, "yesterday"))

        assert result.next_state == State.AWAITING_JOURNEY_STATIONS
        assert result.state_data == {"travelDate": "2024-11-19"}
        assert "19/11/2024" in result.response

    def test_future_date_stays(self, make_context):
        result = run(handle_journey_date, make_context(State.AWAITING_JOURNEY_DATE, "tomorrow"))

        assert result.next_state == State.AWAITING_JOURNEY_DATE
        assert "future" in result.response


class TestJourneyStationsHandler:
    def test_resolves_both_stations(self, make_context, stations):
        stations.resolve.side_effect = [Station(crs="KGX", name="London Kings Cross"), Station(crs="EDB", name="Edinburgh")]

        result = run(handle_journey_stations, make_context(State.AWAITING_JOURNEY_STATIONS, "Kings Cross to Edinburgh"))

        assert result.next_state == State.AWAITING_JOURNEY_TIME
        assert result.state_data["origin"] == "KGX"
        assert result.state_data["destinationName"] == "Edinburgh"

    def test_unknown_station_stays(self, make_context, stations):
        stations.resolve.return_value = None

        result = run(handle_journey_stations, make_context(State.AWAITING_JOURNEY_STATIONS, "Nowhere to Edinburgh"))

        assert result.next_state == State.AWAITING_JOURNEY_STATIONS
        assert "Nowhere" in result.response

    def test_bad_format_stays(self, make_context, stations):
        result = run(handle_journey_stations, make_context(State.AWAITING_JOURNEY_STATIONS, "Edinburgh"))

        stations.resolve.assert_not_awaited()
        assert result.next_state == State.AWAITING_JOURNEY_STATIONS

    def test_lookup_timeout_stays(self, make_context, stations):
        stations.resolve.side_effect = DependencyTimeoutError("station_search", "request timed out")

        result = run(handle_journey_stations, make_context(State.AWAITING_JOURNEY_STATIONS, "A to B"))

        assert result.next_state == State.AWAITING_JOURNEY_STATIONS
        assert "longer than expected" in result.response


class TestJourneyTimeHandler:
    def _data(self):
        return {key: CAPTURED[key] for key in ("journeyId", "travelDate", "origin", "destination", "originName", "destinationName")}

    def test_direct_route_asks_for_confirmation(self, make_context, journeys):
        journeys.find_routes.return_value = [DIRECT_ROUTE]

        result = run(handle_journey_time, make_context(State.AWAITING_JOURNEY_TIME, "10am", self._data()))

        journeys.find_routes.assert_awaited_once_with(
            origin="KGX",
            destination="EDB",
            travel_date="2024-11-15",
            departure_time="10:00",
            correlation_id="corr-test",
        )
        assert result.next_state == State.AWAITING_JOURNEY_CONFIRM
        assert "London Kings Cross → Edinburgh (LNER)" in result.response
        assert result.state_data["matchedRoute"] == DIRECT_ROUTE

    def test_interchange_route_asks_for_routing_confirmation(self, make_context, journeys):
        journeys.find_routes.return_value = [INTERCHANGE_ROUTE]

        result = run(handle_journey_time, make_context(State.AWAITING_JOURNEY_TIME, "10:00", self._data()))

        assert result.next_state == State.AWAITING_ROUTING_CONFIRM
        assert "change at BRI" in result.response

    def test_timeout_stays_with_apology(self, make_context, journeys):
        journeys.find_routes.side_effect = DependencyTimeoutError("journey_matcher", "request timed out")

        result = run(handle_journey_time, make_context(State.AWAITING_JOURNEY_TIME, "10:00", self._data()))

        assert result.next_state == State.AWAITING_JOURNEY_TIME
        assert "taking longer than expected" in result.response

    def test_missing_details_restarts_capture(self, make_context, journeys):
        result = run(handle_journey_time, make_context(State.AWAITING_JOURNEY_TIME, "10:00", {}))

        journeys.find_routes.assert_not_awaited()
        assert result.next_state == State.AWAITING_JOURNEY_DATE

    def test_no_routes_stays(self, make_context, journeys):
        journeys.find_routes.return_value = []

        result = run(handle_journey_time, make_context(State.AWAITING_JOURNEY_TIME, "10:00", self._data()))

        assert result.next_state == State.AWAITING_JOURNEY_TIME


class TestRouteConfirmation:
    def test_yes_moves_to_ticket_upload(self, make_context):
        data = {**CAPTURED, "matchedRoute": DIRECT_ROUTE}

        result = run(handle_route_confirmation, make_context(State.AWAITING_JOURNEY_CONFIRM, "yes", data))

        assert result.next_state == State.AWAITING_TICKET_UPLOAD
        assert result.state_data["confirmedRoute"] == DIRECT_ROUTE

    def test_no_lists_stored_alternatives(self, make_context, journeys):
        data = {**CAPTURED, "allRoutes": [DIRECT_ROUTE, INTERCHANGE_ROUTE]}

        result = run(handle_route_confirmation, make_context(State.AWAITING_ROUTING_CONFIRM, "NO", data))

        journeys.find_routes.assert_not_awaited()
        assert result.next_state == State.AWAITING_ROUTING_ALTERNATIVE
        assert result.response.startswith("Here are alternative routes for your journey:\n")
        assert "1. PAD → BRI → CDF" in result.response
        assert result.state_data == {"currentAlternatives": [INTERCHANGE_ROUTE], "alternativeCount": 1}

    def test_no_without_stored_routes_fetches_next_page(self, make_context, journeys):
        journeys.find_routes.return_value = [INTERCHANGE_ROUTE]

        result = run(handle_route_confirmation, make_context(State.AWAITING_JOURNEY_CONFIRM, "no", CAPTURED))

        assert journeys.find_routes.await_args.kwargs["offset"] == 3
        assert result.state_data["alternativeCount"] == 2

    def test_unrecognized_keeps_current_state(self, make_context):
        result = run(handle_route_confirmation, make_context(State.AWAITING_ROUTING_CONFIRM, "perhaps", CAPTURED))
        assert result.next_state == State.AWAITING_ROUTING_CONFIRM


class TestRoutingAlternative:
    def test_selecting_a_listed_route(self, make_context):
        data = {**CAPTURED, "currentAlternatives": [DIRECT_ROUTE, INTERCHANGE_ROUTE]}

        result = run(handle_routing_alternative, make_context(State.AWAITING_ROUTING_ALTERNATIVE, "2", data))

        assert result.next_state == State.AWAITING_TICKET_UPLOAD
        assert result.state_data["confirmedRoute"] == INTERCHANGE_ROUTE

    def test_selecting_out_of_range(self, make_context):
        data = {**CAPTURED, "currentAlternatives": [DIRECT_ROUTE]}

        result = run(handle_routing_alternative, make_context(State.AWAITING_ROUTING_ALTERNATIVE, "3", data))

        assert result.next_state == State.AWAITING_ROUTING_ALTERNATIVE
        assert "(1-1)" in result.response

    def test_none_after_three_sets_escalates(self, make_context, users, journeys):
        users.find_by_phone.return_value = _user(verified=True)
        data = {**CAPTURED, "alternativeCount": 3}

        result = run(handle_routing_alternative, make_context(State.AWAITING_ROUTING_ALTERNATIVE, "none", data))

        journeys.find_routes.assert_not_awaited()
        assert result.next_state == State.ERROR
        event = result.events[0]
        assert event.event_type == "journey.routing_escalation"
        assert str(event.aggregate_id) == JOURNEY_ID
        assert event.payload["reason"] == "max_alternatives_exceeded"

    def test_lookup_failure_moves_to_error(self, make_context, journeys):
        journeys.find_routes.side_effect = DependencyTimeoutError("journey_matcher", "request timed out")
        data = {**CAPTURED, "alternativeCount": 1}

        result = run(handle_routing_alternative, make_context(State.AWAITING_ROUTING_ALTERNATIVE, "NONE", data))

        assert result.next_state == State.ERROR
        assert result.events == []


class TestTicketUpload:
    def test_skip_submits_journey(self, make_context, users):
        users.find_by_phone.return_value = _user(verified=True)

        result = run(handle_ticket_upload, make_context(State.AWAITING_TICKET_UPLOAD, "skip", CAPTURED))

        assert result.next_state == State.AUTHENTICATED
        assert result.state_data == {}
        event = result.events[0]
        assert event.event_type == "journey.created"
        assert event.aggregate_type == "journey"
        assert str(event.aggregate_id) == JOURNEY_ID
        assert event.payload["ticket_url"] is None
        assert event.payload["travel_date"] == "2024-11-15"

    def test_media_submits_with_ticket_url(self, make_context):
        media = [MediaAttachment(url="https://media.example/ticket.jpg", content_type="image/jpeg")]

        result = run(handle_ticket_upload, make_context(State.AWAITING_TICKET_UPLOAD, "", CAPTURED, media=media))

        assert result.events[0].payload["ticket_url"] == "https://media.example/ticket.jpg"

    def test_text_without_media_stays(self, make_context):
        result = run(handle_ticket_upload, make_context(State.AWAITING_TICKET_UPLOAD, "here it is", CAPTURED))

        assert result.next_state == State.AWAITING_TICKET_UPLOAD
        assert result.events == []


class TestErrorHandler:
    def test_any_input_returns_to_menu(self, make_context):
        result = run(handle_error, make_context(State.ERROR, "anything"))

        assert result.next_state == State.AUTHENTICATED
        assert result.state_data == {}
