from xml.sax.saxutils import escape

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}

GENERIC_APOLOGY = "Sorry, something went wrong on our side. Please try again in a moment."
ALREADY_PROCESSING = "We're still working on your previous message. Please wait a moment."


def escape_xml(text: str) -> str:
    return escape(text, _XML_ENTITIES)


def render_twiml(body: str) -> str:
    """Wrap reply text in a TwiML messaging response."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<Response>\n"
        f"    <Message><Body>{escape_xml(body or '')}</Body></Message>\n"
        "</Response>"
    )
