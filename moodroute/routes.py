from __future__ import annotations

from typing import Dict, Tuple

from moodroute.models import MoodKey, RouteTemplate


def _route(title: str, duration: str, tags: Tuple[str, ...], summary: str, bonus: str) -> RouteTemplate:
    return RouteTemplate(title=title, duration=duration, tags=tags, summary=summary, bonus=bonus)


ROUTE_LIBRARY: Dict[MoodKey, Tuple[RouteTemplate, ...]] = {
    "quiet": (
        _route(
            "Riverside Slow Loop", "75-100 min", ("quiet", "green", "reset"),
            "Start from a calm street in {city}, walk toward the nearest river/canal embankment, "
            "then return through tree-lined backstreets.",
            "Bring a warm drink and do a 5-minute bench pause halfway.",
        ),
        _route(
            "Library Courtyard Circuit", "60-85 min", ("quiet", "bookish", "low-crowd"),
            "Walk from a central library or old reading hall in {city} toward inner courtyards "
            "and side lanes with minimal traffic.",
            "Pick one place to read a single page and continue.",
        ),
        _route(
            "Morning Market Edges", "55-75 min", ("soft", "local", "observational"),
            "Skirt the quieter outer edges of a neighborhood market in {city} instead of its "
            "center, then move into residential alleys.",
            "Grab one seasonal fruit as your route marker.",
        ),
        _route(
            "Park-to-Park Breather", "80-110 min", ("nature", "gentle", "decompress"),
            "Connect two small parks in {city} using the least busy streets, with one viewpoint "
            "stop between them.",
            "Take 3 photos of textures (stone, leaves, windows).",
        ),
        _route(
            "Canal Bench Sequence", "65-90 min", ("minimal", "still", "mindful"),
            "Build a route in {city} around a canal or long boulevard with three planned bench "
            "stops and low social friction.",
            "Use a 4-7-8 breathing cycle during the second stop.",
        ),
    ),
    "gothic": (
        _route(
            "Old Stone Shadows", "80-110 min", ("gothic", "historic", "dramatic"),
            "Start at an old church or civic building in {city}, then trace narrow streets with "
            "arches, ironwork, and weathered facades.",
            "Time it for late afternoon to catch long shadows.",
        ),
        _route(
            "Lantern Alley Trail", "70-95 min", ("moody", "noir", "atmospheric"),
            "Move through older alley networks in {city}, prioritizing routes with stone walls, "
            "lantern lighting, and hidden courtyards.",
            "Listen to one instrumental track per segment.",
        ),
        _route(
            "Cathedral to Clocktower", "90-120 min", ("architecture", "cinematic", "brooding"),
            "Connect two iconic historic landmarks in {city}, walking the oldest streets between "
            "them rather than the fastest roads.",
            "Pause at a high point for a skyline contrast shot.",
        ),
        _route(
            "Rainy Brick Loop", "65-90 min", ("gothic", "cozy-dark", "reflective"),
            "Take a short loop through brick-heavy districts in {city} and stop at an "
            "old-fashioned cafe with dim interior light.",
            "Bring a dark umbrella for weather-proof mood continuity.",
        ),
        _route(
            "Museum Quarter Twilight", "85-105 min", ("cultural", "shadowy", "slow"),
            "Walk around a museum quarter in {city} at twilight, using side streets with statues, "
            "stone stairways, and quiet squares.",
            "End near a bookstore that stays open late.",
        ),
    ),
    "energetic": (
        _route(
            "Street Beats Sprint-Walk", "50-70 min", ("energetic", "urban", "fast"),
            "Create a brisk zig-zag route across lively blocks in {city}, mixing plazas, murals, "
            "and short uphill bursts.",
            "Use 3 x 5-minute power-walk intervals.",
        ),
        _route(
            "Bridge and Viewpoint Push", "75-100 min", ("active", "views", "challenge"),
            "Cross at least one bridge in {city}, then climb to a viewpoint using stairs instead "
            "of flat roads.",
            "Finish with a cold sparkling drink and stretch.",
        ),
        _route(
            "Park Circuit Intervals", "60-85 min", ("fitness", "open-air", "momentum"),
            "Link two busy parks in {city}, alternating relaxed walking and high-tempo segments "
            "every 10 minutes.",
            "Track step count and beat your weekly average.",
        ),
        _route(
            "Cafe-Hopper Dash", "65-90 min", ("social", "trendy", "moving"),
            "Route through 3 compact cafe zones in {city}, spending no more than 8 minutes per "
            "stop to keep the flow high.",
            "Try one new drink style you never order.",
        ),
        _route(
            "Market Pulse Route", "70-95 min", ("busy", "colorful", "high-energy"),
            "Pass through a high-activity market area in {city}, then cut through adjacent art "
            "streets and transit hubs.",
            "Shoot a 30-second route recap video at the end.",
        ),
    ),
    "cozy": (
        _route(
            "Warm Lights Meander", "65-90 min", ("cozy", "warm", "slow"),
            "Start from a neighborhood bakery in {city}, walk low-traffic streets with soft "
            "evening lighting, and end at a tea spot.",
            "Choose one window-lit street for a slower final 10 minutes.",
        ),
        _route(
            "Bookstore and Bakery Loop", "55-80 min", ("soft", "comfort", "casual"),
            "Connect an indie bookstore and a bakery in {city}, prioritizing side streets and "
            "small plazas over avenues.",
            "Bring a tote bag and pick one snack for the walk.",
        ),
        _route(
            "Rain-Friendly Cozy Circuit", "60-85 min", ("cozy", "rain-safe", "indoors-breaks"),
            "Alternate short outside segments in {city} with indoor pauses in arcades, cafes, or "
            "covered passages.",
            "Use waterproof shoes and keep route segments under 12 minutes.",
        ),
        _route(
            "Lantern Courtyard Drift", "70-95 min", ("intimate", "evening", "gentle"),
            "Wander between older courtyard blocks in {city}, taking the most human-scale streets "
            "with less car noise.",
            "End at a cafe with visible kitchen or pastry counter.",
        ),
        _route(
            "Canal Cafe Pairing", "75-105 min", ("cozy", "waterfront", "calm"),
            "Walk a canal-side route in {city} with one midpoint cocoa/coffee stop and a seated "
            "sunset finish.",
            "Pack a light scarf to stay comfortable after dusk.",
        ),
    ),
    "weird": (
        _route(
            "Oddities and Alley Art", "70-95 min", ("weird", "creative", "unexpected"),
            "Build a route in {city} that hits eccentric storefronts, murals, tiny museums, and "
            "unusual side alleys.",
            "Collect 3 'strangest thing I saw' notes on your phone.",
        ),
        _route(
            "Curio Hunt Walk", "65-90 min", ("quirky", "playful", "discovery"),
            "Start near a flea/antique zone in {city}, then detour to unusual architecture "
            "details and novelty shops.",
            "Set a tiny budget challenge: find one item under $10.",
        ),
        _route(
            "Neon Backstreet Drift", "75-100 min", ("night", "experimental", "visual"),
            "In {city}, move through mixed-use blocks with neon signage, retro bars, and hidden "
            "passageways.",
            "Photograph one reflection and one strange shadow.",
        ),
        _route(
            "Micro-Museum Chain", "80-110 min", ("offbeat", "curious", "cultural"),
            "Connect 2-3 niche galleries or micro-museums in {city}, using routes that avoid "
            "mainstream boulevards.",
            "Ask one staff member for a local odd-spot recommendation.",
        ),
        _route(
            "Urban Myth Route", "85-120 min", ("story-driven", "mysterious", "quirky"),
            "Trace places in {city} tied to local legends, unusual statues, or odd historical "
            "anecdotes.",
            "End with a themed drink and write your own mini-urban myth.",
        ),
    ),
}


def routes_for_mood(mood: str) -> Tuple[RouteTemplate, ...]:
    return ROUTE_LIBRARY.get(mood, ROUTE_LIBRARY["cozy"])  # type: ignore[arg-type]
