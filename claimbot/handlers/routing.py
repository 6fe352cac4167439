"""Route confirmation and alternative selection."""

import uuid

from claimbot.handlers.events import as_uuid, journey_event
from claimbot.logging_config import get_logger
from claimbot.services.errors import DependencyError
from claimbot.services.journey_service import ALTERNATIVES_PER_PAGE
from claimbot.services.route_formatter import TICKET_PROMPT, format_alternatives
from claimbot.services.state_machine import ConversationState, HandlerContext, HandlerResult

logger = get_logger("handlers.routing")

MAX_ALTERNATIVE_SETS = 3

CONFIRM_HINT = "Please reply YES to confirm this journey, or NO to see alternative routes."
ALTERNATIVE_HINT = "Please reply with 1, 2, or 3 to select a route, or NONE to see more options."
ESCALATED = (
    "I'm unable to find a matching route from the available options. "
    "Let me escalate this to our support team for manual verification.\n\n"
    "We'll be in touch within 24 hours."
)
MISSING_DETAILS = "Something went wrong. Please start again."
NO_MORE_ROUTES = "I couldn't find any more alternative routes. Please try a different journey."
LOOKUP_FAILED = "Unable to fetch alternative routes at this time. Please try again."


def _to_ticket_upload(route: dict, response_prefix: str) -> HandlerResult:
    return HandlerResult(
        response=f"{response_prefix}\n\n{TICKET_PROMPT}",
        next_state=ConversationState.AWAITING_TICKET_UPLOAD,
        state_data={"confirmedRoute": route, "routingConfirmed": True},
    )


async def fetch_alternatives(ctx: HandlerContext, alternative_count: int) -> HandlerResult:
    data = ctx.state_data
    required = (data.get("origin"), data.get("destination"), data.get("travelDate"), data.get("departureTime"))
    if not all(required):
        return HandlerResult(response=MISSING_DETAILS, next_state=ConversationState.ERROR)

    origin, destination, travel_date, departure_time = required
    try:
        routes = await ctx.external.journeys.find_routes(
            origin=origin,
            destination=destination,
            travel_date=travel_date,
            departure_time=departure_time,
            correlation_id=ctx.external.correlation_id,
            offset=alternative_count * ALTERNATIVES_PER_PAGE,
        )
    except DependencyError as exc:
        logger.warning(
            f"Alternative route lookup failed: {exc}",
            extra={"context": {"correlation_id": ctx.external.correlation_id}},
        )
        return HandlerResult(response=LOOKUP_FAILED, next_state=ConversationState.ERROR)

    if not routes:
        return HandlerResult(response=NO_MORE_ROUTES, next_state=ConversationState.ERROR)

    alternatives = routes[:ALTERNATIVES_PER_PAGE]
    return HandlerResult(
        response=format_alternatives(alternatives),
        next_state=ConversationState.AWAITING_ROUTING_ALTERNATIVE,
        state_data={"currentAlternatives": alternatives, "alternativeCount": alternative_count + 1},
    )


async def _confirm(ctx: HandlerContext) -> HandlerResult:
    return _to_ticket_upload(ctx.state_data.get("matchedRoute"), "Perfect! Your journey has been confirmed.")


async def _reject(ctx: HandlerContext) -> HandlerResult:
    stored = (ctx.state_data.get("allRoutes") or [])[1 : 1 + ALTERNATIVES_PER_PAGE]
    if stored:
        return HandlerResult(
            response=format_alternatives(stored),
            next_state=ConversationState.AWAITING_ROUTING_ALTERNATIVE,
            state_data={"currentAlternatives": stored, "alternativeCount": 1},
        )
    return await fetch_alternatives(ctx, 1)


CONFIRM_TOKENS = {
    "YES": _confirm,
    "NO": _reject,
}


async def handle_route_confirmation(ctx: HandlerContext) -> HandlerResult:
    """Shared by the direct and interchange confirmation states."""
    action = CONFIRM_TOKENS.get(ctx.token)
    if action is None:
        return HandlerResult(response=CONFIRM_HINT, next_state=ctx.current_state)
    return await action(ctx)


def _select(number: int):
    async def select(ctx: HandlerContext) -> HandlerResult:
        alternatives = ctx.state_data.get("currentAlternatives") or []
        if number > len(alternatives):
            return HandlerResult(
                response=f"Please select a valid option (1-{len(alternatives)}).",
                next_state=ConversationState.AWAITING_ROUTING_ALTERNATIVE,
            )
        return _to_ticket_upload(alternatives[number - 1], f"Great! You've selected route {number}.")

    return select


async def _none_match(ctx: HandlerContext) -> HandlerResult:
    alternative_count = int(ctx.state_data.get("alternativeCount") or 1)
    if alternative_count < MAX_ALTERNATIVE_SETS:
        return await fetch_alternatives(ctx, alternative_count)

    journey_id = as_uuid(ctx.state_data.get("journeyId")) or uuid.uuid4()
    user = ctx.external.users.find_by_phone(ctx.phone_number)
    logger.warning(
        "Escalating journey after exhausting alternatives",
        extra={"context": {"journey_id": str(journey_id), "correlation_id": ctx.external.correlation_id}},
    )
    return HandlerResult(
        response=ESCALATED,
        next_state=ConversationState.ERROR,
        state_data={"escalationRequired": True},
        events=[
            journey_event(
                ctx,
                "journey.routing_escalation",
                journey_id,
                user_id=str(user.id) if user else None,
                reason="max_alternatives_exceeded",
                alternative_count=alternative_count,
            )
        ],
    )


ALTERNATIVE_TOKENS = {
    "1": _select(1),
    "2": _select(2),
    "3": _select(3),
    "NONE": _none_match,
}


async def handle_routing_alternative(ctx: HandlerContext) -> HandlerResult:
    action = ALTERNATIVE_TOKENS.get(ctx.token)
    if action is None:
        return HandlerResult(response=ALTERNATIVE_HINT, next_state=ConversationState.AWAITING_ROUTING_ALTERNATIVE)
    return await action(ctx)
