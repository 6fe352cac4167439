from claimbot.services.journey_parsing import parse_travel_date
from claimbot.services.state_machine import ConversationState, HandlerContext, HandlerResult

DATE_EXAMPLES = 'Please try again with a valid date like:\n• "today"\n• "yesterday"\n• "15 Nov"\n• "15/11/2024"'

STATIONS_PROMPT = (
    "Now, which stations did you travel between?\n\n"
    "For example:\n"
    '• "Kings Cross to Edinburgh"\n'
    '• "Manchester to London"\n'
    '• "Brighton to Victoria"'
)


async def handle_journey_date(ctx: HandlerContext) -> HandlerResult:
    result = parse_travel_date(ctx.input_text, today=ctx.external.today)
    if not result.ok:
        return HandlerResult(
            response=f"{result.error}\n\n{DATE_EXAMPLES}",
            next_state=ConversationState.AWAITING_JOURNEY_DATE,
        )

    travel_date = result.value
    return HandlerResult(
        response=f"Got it! Journey date: {travel_date.strftime('%d/%m/%Y')}\n\n{STATIONS_PROMPT}",
        next_state=ConversationState.AWAITING_JOURNEY_STATIONS,
        state_data={"travelDate": travel_date.isoformat()},
    )
