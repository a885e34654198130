from moodroute.tools.maps import (
    append_maps_links,
    build_maps_suggestions,
    strip_raw_urls_from_reply,
)

__all__ = ["append_maps_links", "build_maps_suggestions", "strip_raw_urls_from_reply"]
