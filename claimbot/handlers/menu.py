import uuid

from claimbot.handlers import messages
from claimbot.services.state_machine import ConversationState, HandlerContext, HandlerResult


async def start_journey(ctx: HandlerContext) -> HandlerResult:
    return HandlerResult(
        response=messages.JOURNEY_DATE_PROMPT,
        next_state=ConversationState.AWAITING_JOURNEY_DATE,
        state_data={"journeyId": str(uuid.uuid4())},
    )


async def show_claim_status(ctx: HandlerContext) -> HandlerResult:
    return HandlerResult(
        response=messages.CLAIM_STATUS,
        next_state=ConversationState.AWAITING_CLAIM_STATUS,
        state_data={},
    )


async def _help(ctx: HandlerContext) -> HandlerResult:
    return HandlerResult(response=messages.HELP, next_state=ConversationState.AUTHENTICATED)


async def _logout(ctx: HandlerContext) -> HandlerResult:
    return HandlerResult(response=messages.LOGGED_OUT)


async def _unrecognized(ctx: HandlerContext) -> HandlerResult:
    return HandlerResult(response=messages.MENU_HINT, next_state=ConversationState.AUTHENTICATED)


TOKENS = {
    "DELAY": start_journey,
    "CLAIM": start_journey,
    "STATUS": show_claim_status,
    "HELP": _help,
    "LOGOUT": _logout,
}


async def handle_menu(ctx: HandlerContext) -> HandlerResult:
    return await TOKENS.get(ctx.token, _unrecognized)(ctx)
