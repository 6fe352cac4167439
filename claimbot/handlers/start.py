from claimbot.handlers import messages
from claimbot.handlers.events import user_event
from claimbot.logging_config import get_logger
from claimbot.services.state_machine import ConversationState, HandlerContext, HandlerResult

logger = get_logger("handlers.start")

INVALID_NUMBER = (
    "Sorry, I can only register mobile numbers in international format (for example +447700900123)."
)


async def handle_start(ctx: HandlerContext) -> HandlerResult:
    """First contact: register unknown senders, route known ones by verification status."""
    users = ctx.external.users
    user = users.find_by_phone(ctx.phone_number)

    if user is None:
        try:
            user = users.create(ctx.phone_number)
        except ValueError:
            logger.warning(
                "Rejected registration for non E.164 sender",
                extra={"context": {"correlation_id": ctx.external.correlation_id}},
            )
            return HandlerResult(response=INVALID_NUMBER, next_state=ConversationState.START, state_data={})

        logger.info(
            "Registered new user",
            extra={"context": {"user_id": str(user.id), "correlation_id": ctx.external.correlation_id}},
        )
        return HandlerResult(
            response=messages.WELCOME,
            next_state=ConversationState.AWAITING_TERMS,
            state_data={},
            events=[user_event(ctx, "user.registered", user)],
        )

    if user.verified_at:
        return HandlerResult(response=messages.WELCOME_BACK, next_state=ConversationState.AUTHENTICATED, state_data={})

    return HandlerResult(
        response=messages.RESUME_VERIFICATION,
        next_state=ConversationState.AWAITING_TERMS,
        state_data={},
    )
