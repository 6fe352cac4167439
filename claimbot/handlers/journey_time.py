from claimbot.logging_config import get_logger
from claimbot.services.errors import DependencyError, DependencyTimeoutError
from claimbot.services.journey_parsing import parse_departure_time
from claimbot.services.route_formatter import format_direct_route, format_interchange_route
from claimbot.services.state_machine import ConversationState, HandlerContext, HandlerResult

logger = get_logger("handlers.journey_time")

TIME_EXAMPLES = 'Please try again with a valid time like:\n• "14:30"\n• "2:30pm"\n• "1430"\n• "2pm"'
MISSING_DETAILS = "Something went wrong. Please start again by telling me when you travelled."
NO_ROUTES = "I couldn't find any trains matching that time. Please try a different time."
LOOKUP_SLOW = "Route lookup is taking longer than expected. Please try again in a moment."
LOOKUP_FAILED = "Unable to find routes at this time. Please try again."


def _stay(response: str) -> HandlerResult:
    return HandlerResult(response=response, next_state=ConversationState.AWAITING_JOURNEY_TIME)


async def handle_journey_time(ctx: HandlerContext) -> HandlerResult:
    parsed = parse_departure_time(ctx.input_text)
    if not parsed.ok:
        return _stay(f"{parsed.error}\n\n{TIME_EXAMPLES}")

    departure_time = parsed.value.strftime("%H:%M")
    data = ctx.state_data
    origin, destination, travel_date = data.get("origin"), data.get("destination"), data.get("travelDate")
    if not (origin and destination and travel_date):
        logger.error(
            "Missing journey details in session",
            extra={"context": {"correlation_id": ctx.external.correlation_id, "keys": sorted(data)}},
        )
        return HandlerResult(response=MISSING_DETAILS, next_state=ConversationState.AWAITING_JOURNEY_DATE)

    try:
        routes = await ctx.external.journeys.find_routes(
            origin=origin,
            destination=destination,
            travel_date=travel_date,
            departure_time=departure_time,
            correlation_id=ctx.external.correlation_id,
        )
    except DependencyTimeoutError:
        return _stay(LOOKUP_SLOW)
    except DependencyError as exc:
        logger.warning(
            f"Route lookup failed: {exc}",
            extra={"context": {"correlation_id": ctx.external.correlation_id}},
        )
        return _stay(LOOKUP_FAILED)

    if not routes:
        return _stay(NO_ROUTES)

    route = routes[0]
    state_data = {"departureTime": departure_time, "matchedRoute": route, "allRoutes": routes, "isDirect": route["isDirect"]}
    if route["isDirect"]:
        return HandlerResult(
            response=format_direct_route(route, data.get("originName") or origin, data.get("destinationName") or destination),
            next_state=ConversationState.AWAITING_JOURNEY_CONFIRM,
            state_data=state_data,
        )

    return HandlerResult(
        response=format_interchange_route(route),
        next_state=ConversationState.AWAITING_ROUTING_CONFIRM,
        state_data={**state_data, "interchangeStation": route["interchangeStation"]},
    )
