from claimbot.schemas.webhook import ErrorResponse, InboundMessage, MediaAttachment

__all__ = ["ErrorResponse", "InboundMessage", "MediaAttachment"]
