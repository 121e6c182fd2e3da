"""Hospital Wait Board — Distance, Filtering and Waiting-List Algorithms."""

from .distance import (
    Coordinates,
    compute_distance_km,
    coordinates_from,
)
from .hospital_filter import (
    AllMode,
    InvalidLocation,
    NearbyMode,
    PostalCodeMode,
    filter_and_sort,
    mode_from_params,
)
from .rules import (
    BoardRules,
    get_rules,
)
from .waiting_list import (
    CHECKIN_DELTA,
    WaitingListEntry,
    apply_delta,
    new_entry,
    wait_level,
)

__all__ = [
    "Coordinates",
    "compute_distance_km",
    "coordinates_from",
    "AllMode",
    "InvalidLocation",
    "NearbyMode",
    "PostalCodeMode",
    "filter_and_sort",
    "mode_from_params",
    "BoardRules",
    "get_rules",
    "CHECKIN_DELTA",
    "WaitingListEntry",
    "apply_delta",
    "new_entry",
    "wait_level",
]
