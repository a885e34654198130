from urllib.parse import parse_qs, unquote, urlsplit

import pytest

from moodroute.models import MapsSuggestion, UserProfile
from moodroute.tools.maps import (
    MAPS_SEARCH_BASE,
    append_maps_links,
    build_maps_suggestions,
    build_search_url,
    build_walking_url,
    extract_option_titles,
    pick_anchors_mentioned_in_reply,
    strip_raw_urls_from_reply,
)


@pytest.mark.parametrize("query", ["Bryggen, Bergen, Norway", "Tromsø & fjord / 100%", "a+b=c?"])
def test_search_url_round_trips(query):
    url = build_search_url(query)
    assert url.startswith(MAPS_SEARCH_BASE)
    assert " " not in url
    assert unquote(url[len(MAPS_SEARCH_BASE):]) == query


def test_walking_url_parameters():
    url = build_walking_url("Bergen city center", "Bryggen, Bergen, Norway", ["Floyen", " ", "Fish Market"])
    parts = urlsplit(url)
    assert parts.netloc == "www.google.com"
    assert parts.path == "/maps/dir/"
    params = parse_qs(parts.query)
    assert params == {
        "api": ["1"],
        "origin": ["Bergen city center"],
        "destination": ["Bryggen, Bergen, Norway"],
        "travelmode": ["walking"],
        "waypoints": ["Floyen|Fish Market"],
    }


def test_walking_url_without_waypoints():
    params = parse_qs(urlsplit(build_walking_url("A", "B")).query)
    assert "waypoints" not in params


def test_strip_raw_urls():
    reply = (
        "Start at [Bryggen](https://example.com/bryggen) today.\n"
        "\n"
        "Map: https://maps.example.com/x?y=1   then walk.\n"
        "http://only.example.com"
    )
    cleaned = strip_raw_urls_from_reply(reply)
    assert cleaned == "Start at Bryggen today.\nMap: then walk."
    assert "http" not in cleaned
    assert strip_raw_urls_from_reply(cleaned) == cleaned


@pytest.mark.parametrize("reply", ["", None])
def test_strip_raw_urls_empty(reply):
    assert strip_raw_urls_from_reply(reply) == ""


def test_anchors_mentioned_in_reply(bergen):
    reply = "Walk from bryggen up to FLOYEN and finish at Nordnes Park."
    names = [place.name for place in pick_anchors_mentioned_in_reply(reply, bergen)]
    assert names == ["Bryggen", "Floyen", "Nordnes Park"]
    assert pick_anchors_mentioned_in_reply(reply, None) == []
    assert pick_anchors_mentioned_in_reply("", bergen) == []


def test_suggestions_follow_mentioned_places(bergen):
    reply = "Option 1: start at Bryggen, then climb Floyen."
    suggestions = build_maps_suggestions("Bergen, 1 hour", reply, bergen)

    assert [s.title for s in suggestions] == [
        "Bryggen (historic hanseatic wharf district)",
        "Floyen (hill viewpoint and walking zone)",
    ]
    first = parse_qs(urlsplit(suggestions[0].route_url).query)
    second = parse_qs(urlsplit(suggestions[1].route_url).query)
    assert first["origin"] == ["Bergen city center"]
    assert first["destination"] == ["Bryggen, Bergen, Norway"]
    assert second["origin"] == ["Bryggen, Bergen, Norway"]
    assert unquote(suggestions[1].place_url[len(MAPS_SEARCH_BASE):]) == "Floyen, Bergen, Norway"


def test_seeded_fallback_is_reproducible(bergen):
    reply = "Option 1: Harbor Drift\nWander and see what you find."
    first = build_maps_suggestions("Bergen, 1 hour, rainy", reply, bergen)
    second = build_maps_suggestions("Bergen, 1 hour, rainy", reply, bergen)
    assert len(first) == 3
    assert first == second
    names = {place.name for place in bergen.places}
    assert all(s.title.split(" (")[0] in names for s in first)


def test_option_titles_for_unknown_city():
    reply = "Option 1: River Loop\nOption 2: Old Town Hop\nOption 3: Park Chain\nOption 4: Extra"
    suggestions = build_maps_suggestions("Paris, 2 hours", reply)
    assert [s.title for s in suggestions] == ["River Loop", "Old Town Hop", "Park Chain"]
    params = parse_qs(urlsplit(suggestions[0].route_url).query)
    assert params["origin"] == ["Paris city center"]
    assert params["destination"] == ["River Loop, Paris"]


def test_extract_option_titles_ignores_blank():
    assert extract_option_titles("Option 1:   \nOption 2: Lakeside") == ["Lakeside"]


def test_profile_city_used_when_message_has_none():
    profile = UserProfile(default_city="Lyon")
    suggestions = build_maps_suggestions("plan a walk", "Option 1: Quays", None, profile)
    assert suggestions[0].title == "Quays"
    assert "Lyon" in unquote(suggestions[0].place_url)


@pytest.mark.parametrize(
    "message, reply",
    [
        ("thanks a lot", "You are welcome."),
        ("plan a walk", "Option 1: Somewhere"),
    ],
)
def test_no_suggestions_without_intent_or_city(message, reply):
    assert build_maps_suggestions(message, reply) == []


def _suggestion(n, size=20):
    return MapsSuggestion(
        title=f"Stop {n}",
        place_url="https://maps.example/p" + "p" * size,
        route_url="https://maps.example/r" + "r" * size,
    )


def test_append_full_block():
    result = append_maps_links("Base reply.", [_suggestion(1), _suggestion(2)], 1200)
    assert result.startswith("Base reply.\n\nGoogle Maps links:\n1) Stop 1\n- [Open place](")
    assert "2) Stop 2" in result
    assert result.count("[Open walking route]") == 2


def test_append_falls_back_to_single_route_link():
    suggestions = [_suggestion(n, size=60) for n in range(1, 4)]
    result = append_maps_links("Base reply.", suggestions, 60)
    assert result == (
        "Base reply.\n\nGoogle Maps:\n- [Open walking route](" + suggestions[0].route_url + ")"
    )
    assert len(result) <= 180


def test_append_truncates_base_when_nothing_fits():
    base = "x" * 100
    result = append_maps_links(base, [_suggestion(1)], 10)
    assert result == "x" * 30


def test_append_without_suggestions_or_reply():
    assert append_maps_links("  Reply  ", [], 1200) == "Reply"
    assert append_maps_links("", [_suggestion(1)], 1200) == ""
    assert append_maps_links(None, [_suggestion(1)], 1200) == ""
