import re

from claimbot.handlers import messages
from claimbot.handlers.events import user_event
from claimbot.logging_config import get_logger
from claimbot.services.errors import DependencyError
from claimbot.services.state_machine import ConversationState, HandlerContext, HandlerResult

logger = get_logger("handlers.verification")

MAX_ATTEMPTS = 3
CODE_PATTERN = re.compile(r"^\d{6}$")

CODE_RESENT = (
    "I've sent a new verification code to your phone.\n\n"
    "Please reply with the 6-digit code to verify your number.\n\n"
    "(The code will arrive via SMS)"
)
INVALID_FORMAT = "Invalid code format. Please enter the 6-digit code sent to your phone.\n\nOr reply RESEND to get a new code."
WRONG_CODE = "That code didn't match. Please check the 6-digit code and try again, or reply RESEND to get a new code."
LOCKED_OUT = (
    "Too many incorrect attempts. For your security we've stopped this verification.\n\n"
    "Send any message to start again."
)
NOT_REGISTERED = "Sorry, I couldn't find your registration. Send any message to start again."


def _failed_attempt(ctx: HandlerContext, response: str) -> HandlerResult:
    attempts = int(ctx.state_data.get("attemptCount") or 0) + 1
    if attempts >= MAX_ATTEMPTS:
        logger.warning(
            "Verification locked out",
            extra={"context": {"attempts": attempts, "correlation_id": ctx.external.correlation_id}},
        )
        return HandlerResult(response=LOCKED_OUT)
    return HandlerResult(
        response=response,
        next_state=ConversationState.AWAITING_OTP,
        state_data={**ctx.state_data, "attemptCount": attempts},
    )


async def _resend(ctx: HandlerContext) -> HandlerResult:
    try:
        await ctx.external.verification.start(ctx.phone_number)
    except DependencyError as exc:
        logger.warning(f"Verification resend failed: {exc}")
        return HandlerResult(response=messages.SERVICE_UNAVAILABLE, next_state=ConversationState.AWAITING_OTP)
    return HandlerResult(
        response=CODE_RESENT,
        next_state=ConversationState.AWAITING_OTP,
        state_data={**ctx.state_data, "verificationResent": True},
    )


async def _check_code(ctx: HandlerContext) -> HandlerResult:
    code = ctx.input_text.strip()
    if not CODE_PATTERN.match(code):
        return _failed_attempt(ctx, INVALID_FORMAT)

    user = ctx.external.users.find_by_phone(ctx.phone_number)
    if user is None:
        return HandlerResult(response=NOT_REGISTERED)

    try:
        check = await ctx.external.verification.check(ctx.phone_number, code)
    except DependencyError as exc:
        logger.warning(
            f"Verification check failed: {exc}",
            extra={"context": {"correlation_id": ctx.external.correlation_id}},
        )
        return HandlerResult(response=messages.SERVICE_UNAVAILABLE, next_state=ConversationState.AWAITING_OTP)

    if not check.approved:
        return _failed_attempt(ctx, WRONG_CODE)

    ctx.external.users.mark_verified(user)
    return HandlerResult(
        response=messages.VERIFIED,
        next_state=ConversationState.AUTHENTICATED,
        state_data={},
        events=[user_event(ctx, "user.verified", user, verified_at=user.verified_at.isoformat())],
    )


TOKENS = {
    "RESEND": _resend,
}


async def handle_verification_code(ctx: HandlerContext) -> HandlerResult:
    return await TOKENS.get(ctx.token, _check_code)(ctx)
