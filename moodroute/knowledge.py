"""Curated city knowledge used to ground replies in real place names."""
from __future__ import annotations

import re
import unicodedata
from typing import Dict, List, Optional, Tuple

from moodroute.models import CityRecord, PlaceRecord


def _city(city: str, county: str, aliases: List[str], places: List[Tuple[str, str]]) -> CityRecord:
    return CityRecord(
        city=city,
        county=county,
        aliases=tuple(aliases),
        places=tuple(PlaceRecord(name=name, kind=kind) for name, kind in places),
    )


NORWAY_CITY_KNOWLEDGE: Tuple[CityRecord, ...] = (
    _city("Hamar", "Innlandet", ["hamar"], [
        ("Domkirkeodden", "open-air museum and cathedral ruins"),
        ("Mjosa lakeside promenade", "waterfront walking route"),
        ("Koigen", "lakefront park and event space"),
        ("Ankerskogen", "recreation and wellness complex"),
        ("Hamar kulturhus", "culture house and performance venue"),
    ]),
    _city("Oslo", "Oslo", ["oslo"], [
        ("Akershus Fortress", "historic fortress area"),
        ("Oslo Opera House", "waterfront architecture landmark"),
        ("Vigeland Park", "sculpture park"),
        ("Aker Brygge", "harbor promenade and cafes"),
        ("Ekebergparken", "hillside sculpture park and viewpoints"),
    ]),
    _city("Bergen", "Vestland", ["bergen"], [
        ("Bryggen", "historic hanseatic wharf district"),
        ("Floyen", "hill viewpoint and walking zone"),
        ("Fish Market", "central harbor market area"),
        ("Nordnes Park", "coastal neighborhood park"),
        ("KODE museums area", "art and culture district"),
    ]),
    _city("Trondheim", "Trondelag", ["trondheim"], [
        ("Nidaros Cathedral", "major gothic cathedral"),
        ("Bakklandet", "historic riverside neighborhood"),
        ("Kristiansten Fortress", "hilltop fortress viewpoint"),
        ("Nidelva riverside paths", "walkable river loop"),
        ("Rockheim district", "music museum and harbor area"),
    ]),
    _city("Stavanger", "Rogaland", ["stavanger"], [
        ("Gamle Stavanger", "old town with wooden houses"),
        ("Ovre Holmegate", "colorful street and cafes"),
        ("Vagen harbor", "waterfront walk zone"),
        ("Mosvatnet", "urban lake loop"),
        ("Norwegian Petroleum Museum", "harbor museum stop"),
    ]),
    _city("Tromso", "Troms", ["tromso", "tromsoe"], [
        ("Arctic Cathedral", "iconic modern church"),
        ("Fjellheisen cable car area", "panoramic viewpoint"),
        ("Polaria", "arctic-themed science center"),
        ("Telegrafbukta", "coastal beach and walking area"),
        ("Prestvannet", "nature reserve loop"),
    ]),
    _city("Kristiansand", "Agder", ["kristiansand"], [
        ("Posebyen", "old wooden-house quarter"),
        ("Bystranda", "city beach promenade"),
        ("Fiskebrygga", "harbor food and walk zone"),
        ("Ravnedalen Park", "green valley park"),
        ("Odderoya", "coastal peninsula with trails"),
    ]),
    _city("Alesund", "More og Romsdal", ["alesund", "aalesund"], [
        ("Aksla viewpoint", "city panorama point"),
        ("Brosundet", "canal and art nouveau facades"),
        ("Jugendstilsenteret", "art nouveau museum area"),
        ("Atlanterhavsparken", "aquarium and coastal zone"),
        ("Molja lighthouse area", "harbor walk landmark"),
    ]),
    _city("Drammen", "Buskerud", ["drammen"], [
        ("Ypsilon bridge", "modern pedestrian bridge"),
        ("Bragernes Torg", "city square and cafe area"),
        ("Spiralen viewpoint", "hill route with views"),
        ("Drammenselva promenade", "riverfront walking line"),
        ("Papirbredden", "riverside culture and campus zone"),
    ]),
    _city("Fredrikstad", "Ostfold", ["fredrikstad"], [
        ("Gamlebyen", "fortified old town"),
        ("Isegran", "historic island fort area"),
        ("Glomma riverside", "waterfront path network"),
        ("Voldportbroa area", "old-town access bridge zone"),
        ("Stortorvet", "central square and social hub"),
    ]),
    _city("Lillehammer", "Innlandet", ["lillehammer"], [
        ("Maihaugen", "open-air museum and heritage park"),
        ("Storgata", "pedestrian main street"),
        ("Lysgardsbakken", "olympic ski jump viewpoint"),
        ("Mesna riverside trails", "calmer walking paths"),
        ("Sondre Park", "central green city stop"),
    ]),
    _city("Bodo", "Nordland", ["bodo", "boedo"], [
        ("Stormen Library district", "waterfront culture quarter"),
        ("Bodo harbor promenade", "sea-facing route"),
        ("Norwegian Aviation Museum", "specialty museum"),
        ("Rensasen Park", "central hill park"),
        ("Moloen", "breakwater walk with sea views"),
    ]),
)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
# letters that have no combining-mark decomposition
_TRANSLITERATE = str.maketrans({"ø": "o", "Ø": "O", "æ": "ae", "Æ": "AE"})


def normalize_city_key(value: Optional[str]) -> str:
    """Lowercase, drop diacritics and collapse punctuation runs to single spaces."""
    decomposed = unicodedata.normalize("NFD", str(value or "").translate(_TRANSLITERATE))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM.sub(" ", stripped.lower()).strip()


_ALIAS_INDEX: Dict[str, CityRecord] = {
    normalize_city_key(alias): record
    for record in NORWAY_CITY_KNOWLEDGE
    for alias in record.aliases
}


def is_known_alias(value: Optional[str]) -> bool:
    key = normalize_city_key(value)
    return bool(key) and key in _ALIAS_INDEX


def find_city_knowledge(city_name: Optional[str]) -> Optional[CityRecord]:
    """Resolve a free-form city name to its record, or None when unknown.

    Exact alias matches win; otherwise the key may start with a city's own
    name followed by a qualifier ("Oslo, Norway", "trondheim city").
    """
    key = normalize_city_key(city_name)
    if not key:
        return None
    if key in _ALIAS_INDEX:
        return _ALIAS_INDEX[key]
    for record in NORWAY_CITY_KNOWLEDGE:
        city_key = normalize_city_key(record.city)
        if key == city_key or key.startswith(f"{city_key} "):
            return record
    return None
