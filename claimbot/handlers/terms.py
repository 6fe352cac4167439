from claimbot.handlers import messages
from claimbot.logging_config import get_logger
from claimbot.services.errors import DependencyError
from claimbot.services.state_machine import ConversationState, HandlerContext, HandlerResult

logger = get_logger("handlers.terms")

TERMS_HINT = (
    "Sorry, I didn't understand that.\n\n"
    "Please reply with:\n"
    "• YES - to accept terms and continue\n"
    "• NO - to opt out\n"
    "• TERMS - to read our terms and conditions"
)

DECLINED = (
    "I understand. You're welcome to come back anytime if you change your mind!\n\n"
    "Just send any message to start again. 👋"
)


async def _accept(ctx: HandlerContext) -> HandlerResult:
    try:
        await ctx.external.verification.start(ctx.phone_number)
    except DependencyError as exc:
        logger.warning(
            f"Verification start failed: {exc}",
            extra={"context": {"correlation_id": ctx.external.correlation_id}},
        )
        return HandlerResult(response=messages.SERVICE_UNAVAILABLE, next_state=ConversationState.AWAITING_TERMS)

    return HandlerResult(
        response=messages.CODE_SENT,
        next_state=ConversationState.AWAITING_OTP,
        state_data={"verificationStarted": True, "attemptCount": 0},
    )


async def _show_terms(ctx: HandlerContext) -> HandlerResult:
    return HandlerResult(
        response=(
            f"You can read our full terms and conditions here:\n{ctx.external.terms_url}\n\n"
            "Once you've read them, reply YES to accept and continue, or NO to opt out."
        ),
        next_state=ConversationState.AWAITING_TERMS,
    )


async def _decline(ctx: HandlerContext) -> HandlerResult:
    return HandlerResult(response=DECLINED)


async def _unrecognized(ctx: HandlerContext) -> HandlerResult:
    return HandlerResult(response=TERMS_HINT, next_state=ConversationState.AWAITING_TERMS)


TOKENS = {
    "YES": _accept,
    "TERMS": _show_terms,
    "NO": _decline,
}


async def handle_terms(ctx: HandlerContext) -> HandlerResult:
    return await TOKENS.get(ctx.token, _unrecognized)(ctx)
