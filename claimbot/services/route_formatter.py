from typing import Any

TICKET_PROMPT = (
    "Now please send a photo of your ticket.\n\n"
    "You can:\n"
    "• Take a photo of your physical ticket\n"
    "• Screenshot your e-ticket\n"
    "• Upload your ticket PDF\n\n"
    "Or reply SKIP to submit without a ticket."
)

CONFIRM_QUESTION = "Is this the journey you took? Reply YES to confirm or NO to see alternatives."


def station_path(route: dict[str, Any]) -> str:
    legs = route.get("legs") or []
    if not legs:
        return ""
    stops = [leg.get("from") for leg in legs] + [legs[-1].get("to")]
    return " → ".join(str(stop) for stop in stops)


def format_direct_route(route: dict[str, Any], origin_name: str, destination_name: str) -> str:
    leg = route["legs"][0]
    return (
        f"I found the {leg.get('departure')} {origin_name} → {destination_name} ({leg.get('operator')}).\n\n"
        f"{CONFIRM_QUESTION}"
    )


def format_interchange_route(route: dict[str, Any]) -> str:
    legs_summary = "\n".join(
        f"  Leg {index}: {leg.get('departure')} {leg.get('from')} → {leg.get('to')}"
        for index, leg in enumerate(route["legs"], start=1)
    )
    return f"I found a journey with a change at {route.get('interchangeStation')}:\n\n{legs_summary}\n\n{CONFIRM_QUESTION}"


def format_alternatives(routes: list[dict[str, Any]]) -> str:
    lines = ["Here are alternative routes for your journey:\n"]
    for number, route in enumerate(routes, start=1):
        lines.append(f"\n{number}. {station_path(route)}\n")
        for index, leg in enumerate(route.get("legs") or [], start=1):
            lines.append(
                f"   Leg {index}: {leg.get('from')} → {leg.get('to')} "
                f"({leg.get('operator')}, {leg.get('departure')}-{leg.get('arrival')})\n"
            )
        lines.append(f"   Total: {route.get('totalDuration')}\n")
    lines.append("\nReply with 1, 2, or 3 to select a route, or NONE if none of these match your journey.")
    return "".join(lines)
