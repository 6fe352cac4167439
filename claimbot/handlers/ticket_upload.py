import uuid

from claimbot.handlers.events import as_uuid, journey_event
from claimbot.handlers.messages import MENU_OPTIONS
from claimbot.logging_config import get_logger
from claimbot.services.state_machine import ConversationState, HandlerContext, HandlerResult

logger = get_logger("handlers.ticket_upload")

TICKET_HINT = (
    "Please send a photo of your ticket, or reply SKIP to continue without one.\n\n"
    "You can:\n"
    "• Take a photo of your physical ticket\n"
    "• Screenshot your e-ticket\n"
    "• Upload your ticket PDF"
)
SUBMITTED = (
    "✓ Journey submitted successfully!\n\n"
    "We'll process your claim and notify you of any updates.\n\n"
    f"What would you like to do next?\n\n{MENU_OPTIONS}"
)


def _submit(ctx: HandlerContext, ticket_url) -> HandlerResult:
    data = ctx.state_data
    journey_id = as_uuid(data.get("journeyId")) or uuid.uuid4()
    user = ctx.external.users.find_by_phone(ctx.phone_number)

    logger.info(
        "Journey submitted",
        extra={
            "context": {
                "journey_id": str(journey_id),
                "has_ticket": ticket_url is not None,
                "correlation_id": ctx.external.correlation_id,
            }
        },
    )
    return HandlerResult(
        response=SUBMITTED,
        next_state=ConversationState.AUTHENTICATED,
        state_data={},
        events=[
            journey_event(
                ctx,
                "journey.created",
                journey_id,
                user_id=str(user.id) if user else None,
                phone_number=ctx.phone_number,
                travel_date=data.get("travelDate"),
                origin=data.get("origin"),
                destination=data.get("destination"),
                departure_time=data.get("departureTime"),
                route=data.get("confirmedRoute"),
                ticket_url=ticket_url,
            )
        ],
    )


async def handle_ticket_upload(ctx: HandlerContext) -> HandlerResult:
    if ctx.token == "SKIP":
        return _submit(ctx, None)
    if ctx.has_media:
        return _submit(ctx, ctx.external.media[0].url)
    return HandlerResult(response=TICKET_HINT, next_state=ConversationState.AWAITING_TICKET_UPLOAD)
