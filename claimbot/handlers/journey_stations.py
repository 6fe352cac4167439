from claimbot.logging_config import get_logger
from claimbot.services.errors import DependencyError, DependencyTimeoutError
from claimbot.services.journey_parsing import parse_station_pair
from claimbot.services.state_machine import ConversationState, HandlerContext, HandlerResult

logger = get_logger("handlers.journey_stations")

INVALID_FORMAT = (
    "Invalid format. Please tell me your journey like:\n\n"
    "Examples:\n"
    '• "Kings Cross to Edinburgh"\n'
    '• "Manchester to London"\n'
    '• "Brighton to Victoria"\n\n'
    'Make sure to include "to" between the stations.'
)
LOOKUP_SLOW = "Station lookup is taking longer than expected. Please try again in a moment."
LOOKUP_FAILED = "Sorry, I couldn't look up stations right now. Please try again."

TIME_PROMPT = 'What time did your train depart?\n\nYou can say:\n• "14:30"\n• "2:30pm"\n• "1430"\n• "2pm"'


def _stay(response: str) -> HandlerResult:
    return HandlerResult(response=response, next_state=ConversationState.AWAITING_JOURNEY_STATIONS)


async def handle_journey_stations(ctx: HandlerContext) -> HandlerResult:
    pair = parse_station_pair(ctx.input_text)
    if pair is None:
        return _stay(INVALID_FORMAT)

    origin_query, destination_query = pair
    try:
        origin = await ctx.external.stations.resolve(origin_query)
        if origin is None:
            return _stay(f'I couldn\'t find a station called "{origin_query}". Please try again with the full station name.')
        destination = await ctx.external.stations.resolve(destination_query)
        if destination is None:
            return _stay(
                f'I couldn\'t find a station called "{destination_query}". Please try again with the full station name.'
            )
    except DependencyTimeoutError:
        return _stay(LOOKUP_SLOW)
    except DependencyError as exc:
        logger.warning(
            f"Station lookup failed: {exc}",
            extra={"context": {"correlation_id": ctx.external.correlation_id}},
        )
        return _stay(LOOKUP_FAILED)

    return HandlerResult(
        response=f"Got it! Journey route: {origin.name} → {destination.name}\n\n{TIME_PROMPT}",
        next_state=ConversationState.AWAITING_JOURNEY_TIME,
        state_data={
            "origin": origin.crs,
            "destination": destination.crs,
            "originName": origin.name,
            "destinationName": destination.name,
        },
    )
