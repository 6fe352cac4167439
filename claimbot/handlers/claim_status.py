from claimbot.handlers import messages
from claimbot.handlers.menu import show_claim_status, start_journey
from claimbot.services.state_machine import ConversationState, HandlerContext, HandlerResult

STATUS_HINT = (
    "Sorry, I didn't understand that.\n\n"
    "Reply with:\n"
    "• MENU - Back to the main menu\n"
    "• DELAY - Start a new claim\n"
    "• STATUS - Refresh your claim status"
)


async def _back_to_menu(ctx: HandlerContext) -> HandlerResult:
    return HandlerResult(response=messages.WELCOME_BACK, next_state=ConversationState.AUTHENTICATED, state_data={})


async def _unrecognized(ctx: HandlerContext) -> HandlerResult:
    return HandlerResult(response=STATUS_HINT, next_state=ConversationState.AWAITING_CLAIM_STATUS)


TOKENS = {
    "MENU": _back_to_menu,
    "DELAY": start_journey,
    "CLAIM": start_journey,
    "STATUS": show_claim_status,
}


async def handle_claim_status(ctx: HandlerContext) -> HandlerResult:
    return await TOKENS.get(ctx.token, _unrecognized)(ctx)
