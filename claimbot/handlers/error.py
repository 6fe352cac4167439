from claimbot.handlers import messages
from claimbot.logging_config import get_logger
from claimbot.services.state_machine import ConversationState, HandlerContext, HandlerResult

logger = get_logger("handlers.error")

RECOVERY = (
    "Sorry, we couldn't complete your last request. If we escalated your journey, "
    "our support team will review it within 24 hours.\n\n"
)


async def handle_error(ctx: HandlerContext) -> HandlerResult:
    """Any message out of the error state returns the sender to the main menu."""
    logger.info(
        "Recovering conversation from error state",
        extra={"context": {"correlation_id": ctx.external.correlation_id}},
    )
    return HandlerResult(
        response=RECOVERY + messages.MENU_OPTIONS,
        next_state=ConversationState.AUTHENTICATED,
        state_data={},
    )
