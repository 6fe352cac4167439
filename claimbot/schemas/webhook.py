from typing import Mapping, Optional

from pydantic import AliasChoices, BaseModel, Field

CHANNEL_PREFIXES = ("whatsapp:", "sms:")
REQUIRED_FIELDS = ("MessageSid", "From", "Body")


def strip_channel_prefix(address: Optional[str]) -> str:
    value = (address or "").strip()
    for prefix in CHANNEL_PREFIXES:
        if value.lower().startswith(prefix):
            return value[len(prefix) :]
    return value


class MediaAttachment(BaseModel):
    url: str
    content_type: Optional[str] = None


class InboundMessage(BaseModel):
    message_sid: str = Field(validation_alias=AliasChoices("MessageSid", "message_sid"))
    sender: str = Field(validation_alias=AliasChoices("From", "sender"))
    recipient: Optional[str] = Field(default=None, validation_alias=AliasChoices("To", "recipient"))
    body: str = Field(default="", validation_alias=AliasChoices("Body", "body"))
    num_media: int = Field(default=0, validation_alias=AliasChoices("NumMedia", "num_media"))
    media: list[MediaAttachment] = Field(default_factory=list)

    @classmethod
    def from_form(cls, params: Mapping[str, str]) -> "InboundMessage":
        """Build from transport form fields. Required fields are checked by the caller."""
        try:
            num_media = max(0, int(params.get("NumMedia") or 0))
        except ValueError:
            num_media = 0

        media = [
            MediaAttachment(url=params[f"MediaUrl{index}"], content_type=params.get(f"MediaContentType{index}"))
            for index in range(num_media)
            if params.get(f"MediaUrl{index}")
        ]
        return cls(
            MessageSid=params["MessageSid"].strip(),
            From=strip_channel_prefix(params["From"]),
            To=strip_channel_prefix(params.get("To")) or None,
            Body=params.get("Body") or "",
            NumMedia=num_media,
            media=media,
        )


def missing_required_field(params: Mapping[str, str]) -> Optional[str]:
    """Name of the first required field that is absent, or None. Body may be empty."""
    for name in REQUIRED_FIELDS:
        value = params.get(name)
        if value is None:
            return name
        if name != "Body" and not value.strip():
            return name
    return None


class ErrorResponse(BaseModel):
    error: str
    message: str
    correlation_id: str
    retry_after: Optional[int] = None
