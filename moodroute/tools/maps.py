"""Google Maps links built from known place names, never from model output URLs."""
from __future__ import annotations

import re
from typing import List, Optional, Sequence
from urllib.parse import quote, urlencode

from moodroute.models import CityRecord, MapsSuggestion, PlaceRecord, UserProfile
from moodroute.picking import pick_city_anchors, string_hash
from moodroute.signals import extract_city, is_likely_route_intent


MAPS_SEARCH_BASE = "https://www.google.com/maps/search/?api=1&query="
MAPS_DIRECTIONS_BASE = "https://www.google.com/maps/dir/?"
COUNTRY_SUFFIX = "Norway"
MAX_ANCHORS = 3
# characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"

_MARKDOWN_LINK = re.compile(r"\[([^\]\n]{1,160})\]\((https?://[^\s)]+)\)", re.IGNORECASE)
_BARE_URL = re.compile(r"https?://[^\s<>\"')]+", re.IGNORECASE)
_OPTION_TITLE = re.compile(r"Option\s+\d+\s*:[ \t]*(.+)", re.IGNORECASE)
_OPTION_ONE = re.compile(r"\bOption 1\b", re.IGNORECASE)


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def build_search_url(query: str) -> str:
    return MAPS_SEARCH_BASE + quote(_clean(query), safe=_URI_COMPONENT_SAFE)


def build_walking_url(origin: str, destination: str, waypoints: Sequence[str] = ()) -> str:
    params = {
        "api": "1",
        "origin": _clean(origin),
        "destination": _clean(destination),
        "travelmode": "walking",
    }
    stops = [_clean(item) for item in waypoints if _clean(item)][:3]
    if stops:
        params["waypoints"] = "|".join(stops)
    return MAPS_DIRECTIONS_BASE + urlencode(params)


def strip_raw_urls_from_reply(reply: Optional[str]) -> str:
    """Collapse markdown links to their label and drop bare URLs.

    Lines are whitespace-normalized and blank lines removed, so running it
    twice gives the same text.
    """
    text = reply or ""
    if not text:
        return ""
    text = _MARKDOWN_LINK.sub(r"\1", text)
    lines = []
    for line in text.splitlines():
        line = re.sub(r"\s{2,}", " ", _BARE_URL.sub("", line)).strip()
        if line:
            lines.append(line)
    return "\n".join(lines)


def pick_anchors_mentioned_in_reply(reply: str, city_knowledge: Optional[CityRecord]) -> List[PlaceRecord]:
    if city_knowledge is None or not city_knowledge.places:
        return []
    lowered = (reply or "").lower()
    if not lowered:
        return []
    mentioned = [place for place in city_knowledge.places if place.name.lower() in lowered]
    return mentioned[:MAX_ANCHORS]


def extract_option_titles(reply: str) -> List[str]:
    titles = [_clean(match.group(1)) for match in _OPTION_TITLE.finditer(reply or "")]
    return [title for title in titles if title][:MAX_ANCHORS]


def build_maps_suggestions(
    message: str,
    reply: str,
    city_knowledge: Optional[CityRecord] = None,
    user_profile: Optional[UserProfile] = None,
) -> List[MapsSuggestion]:
    """Place and walking-route links for the anchors a reply talks about.

    Anchor priority: knowledge-base places named in the reply, then the
    seeded pick over the city's places, then "Option N: <title>" lines when
    the city is not in the knowledge base. Empty when there is no route
    intent or no city to anchor on.
    """
    route_intent = is_likely_route_intent(message) or bool(_OPTION_ONE.search(reply or ""))
    if not route_intent:
        return []

    city = _clean(
        (city_knowledge.city if city_knowledge else None)
        or extract_city(message)
        or (user_profile.default_city if user_profile else "")
    )
    if not city:
        return []

    anchors = pick_anchors_mentioned_in_reply(reply, city_knowledge)
    if not anchors and city_knowledge is not None:
        seed = string_hash(f"{city}|{(message or '').lower()}")
        anchors = pick_city_anchors(city_knowledge, seed)

    if anchors:
        suggestions = []
        for index, place in enumerate(anchors[:MAX_ANCHORS]):
            place_query = f"{place.name}, {city}, {COUNTRY_SUFFIX}"
            if index > 0:
                origin = f"{anchors[index - 1].name}, {city}, {COUNTRY_SUFFIX}"
            else:
                origin = f"{city} city center"
            suggestions.append(
                MapsSuggestion(
                    title=f"{place.name} ({place.kind})",
                    place_url=build_search_url(place_query),
                    route_url=build_walking_url(origin, place_query),
                )
            )
        return suggestions

    return [
        MapsSuggestion(
            title=title,
            place_url=build_search_url(f"{title}, {city}"),
            route_url=build_walking_url(f"{city} city center", f"{title}, {city}"),
        )
        for title in extract_option_titles(reply)
    ]


def append_maps_links(reply: Optional[str], suggestions: Sequence[MapsSuggestion], max_message_length: int) -> str:
    """Append the numbered links block, shrinking it before touching the reply.

    The result never exceeds 3x max_message_length: first the block drops to
    a single route link, then the base reply itself is cut.
    """
    base = _clean(reply)
    if not base:
        return ""
    if not suggestions:
        return base

    lines = ["", "Google Maps links:"]
    for index, item in enumerate(suggestions, start=1):
        lines.append(f"{index}) {item.title}")
        lines.append(f"- [Open place]({item.place_url})")
        lines.append(f"- [Open walking route]({item.route_url})")

    limit = max_message_length * 3
    enriched = base + "\n" + "\n".join(lines)
    if len(enriched) <= limit:
        return enriched

    fallback = f"{base}\n\nGoogle Maps:\n- [Open walking route]({suggestions[0].route_url})"
    if len(fallback) <= limit:
        return fallback
    return base[:limit]

