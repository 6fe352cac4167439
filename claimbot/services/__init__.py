from claimbot.services.state_machine import (
    INITIAL_STATE,
    ConversationEngine,
    ConversationState,
    DataPolicy,
    ExternalContext,
    HandlerContext,
    HandlerResult,
    OutboxEventDraft,
    normalize_input,
)
