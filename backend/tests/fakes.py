"""In-memory collaborators shared by the engine, session and API tests."""
from typing import Dict, List, Optional

from domain.models import GeoLocation, PlaceCandidate, PlaceDetails
from services.places_client import PlacesProvider
from services.vision_client import VisionClient

FERRY_LOCATION = GeoLocation(37.7955, -122.3937)

FERRY_CANDIDATE = PlaceCandidate(
    name="Ferry Building",
    latitude=37.7956,
    longitude=-122.3934,
    place_id="ferry",
    types=("tourist_attraction", "point_of_interest"),
    rating=4.7,
)

FERRY_DETAILS = PlaceDetails(
    place_id="ferry",
    name="Ferry Building",
    formatted_address="1 Ferry Building, San Francisco, CA 94111",
    phone="(415) 983-8000",
    url="https://maps.google.com/?cid=1",
    rating=4.7,
    user_ratings_total=20000,
    types=("tourist_attraction",),
    editorial_summary="Historic ferry terminal with a food hall.",
)


class FakeVision(VisionClient):
    def __init__(self, text: Optional[str] = None, error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[bytes] = []

    def identify(self, image: bytes) -> str:
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return self.text or ""


class FakePlaces(PlacesProvider):
    def __init__(
        self,
        text_results: Optional[Dict[str, List[PlaceCandidate]]] = None,
        nearby_results: Optional[Dict[float, List[PlaceCandidate]]] = None,
        details: Optional[Dict[str, PlaceDetails]] = None,
        text_error: Optional[Exception] = None,
        nearby_error: Optional[Exception] = None,
        details_error: Optional[Exception] = None,
    ):
        self.text_results = text_results or {}
        self.nearby_results = nearby_results or {}
        self.details = details or {}
        self.text_error = text_error
        self.nearby_error = nearby_error
        self.details_error = details_error
        self.text_queries: List[str] = []
        self.nearby_radii: List[float] = []
        self.detail_ids: List[str] = []

    def search_places_by_text(self, query, location, radius_m):
        self.text_queries.append(query)
        if self.text_error is not None:
            raise self.text_error
        return list(self.text_results.get(query, []))

    def search_places_nearby(self, location, radius_m):
        self.nearby_radii.append(radius_m)
        if self.nearby_error is not None:
            raise self.nearby_error
        return list(self.nearby_results.get(radius_m, []))

    def fetch_place_details(self, place_id):
        self.detail_ids.append(place_id)
        if self.details_error is not None:
            raise self.details_error
        return self.details.get(place_id)

    @property
    def call_count(self) -> int:
        return len(self.text_queries) + len(self.nearby_radii) + len(self.detail_ids)
