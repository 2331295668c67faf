"""Distance-based validation of geocoding candidates."""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from geopy.distance import great_circle

from .models import Coordinate, GeocodeCandidate

logger = logging.getLogger(__name__)

# Furthest a name-search hit may be from the known location and still count as the same business.
MAX_DISTANCE_KM = 1.5


def distance_km(origin: Coordinate, target: Coordinate) -> float:
    """Return the great-circle (haversine) distance in kilometers."""

    return float(great_circle(origin, target).kilometers)


def select_best_candidate(
    candidates: Sequence[GeocodeCandidate],
    reference: Optional[Coordinate] = None,
    max_distance_km: float = MAX_DISTANCE_KM,
) -> Tuple[Optional[GeocodeCandidate], Optional[float]]:
    """Pick the candidate closest to ``reference``.

    Without a reference point the provider's first result is accepted as-is.
    Otherwise the nearest candidate wins regardless of provider ordering, and
    it is only accepted when it lies within ``max_distance_km`` (inclusive).
    Returns the accepted candidate and its distance, or ``(None, distance)``
    when the nearest one is too far away.
    """

    if not candidates:
        return None, None
    if reference is None:
        return candidates[0], None

    best: Optional[GeocodeCandidate] = None
    best_distance = float("inf")
    for candidate in candidates:
        distance = distance_km(reference, candidate.coordinate)
        if distance < best_distance:
            best = candidate
            best_distance = distance

    if best is None or best_distance > max_distance_km:
        logger.debug("Closest candidate is %.2f km away, limit is %.2f km", best_distance, max_distance_km)
        return None, best_distance
    return best, best_distance
