from domain.models import PlaceDetails, VisionHint
from services.place_enrichment import (
    build_description,
    build_details,
    build_vision_details,
    format_place_type,
    truncate_review,
)


def _details(**overrides):
    base = dict(
        place_id="ferry",
        name="Ferry Building",
        formatted_address="1 Ferry Building, San Francisco, CA",
        phone="(415) 983-8000",
        website="https://www.ferrybuildingmarketplace.com",
        url="https://maps.google.com/?cid=1",
        rating=4.7,
        user_ratings_total=20000,
        types=("tourist_attraction",),
        editorial_summary="Historic ferry terminal with a food hall.",
        opening_hours=("Monday: 7:00 AM - 10:00 PM", "Tuesday: 7:00 AM - 10:00 PM"),
        reviews=("Great market.",),
    )
    base.update(overrides)
    return PlaceDetails(**base)


def test_format_place_type():
    assert format_place_type("tourist_attraction") == "Tourist Attraction"
    assert format_place_type(None) == "Location"
    assert format_place_type("  ") == "Location"


def test_truncate_review():
    assert truncate_review("short") == "short"
    long_text = "x" * 250
    out = truncate_review(long_text)
    assert out == "x" * 200 + "..."


def test_editorial_plus_distinct_vision():
    hint = VisionHint(name="Ferry Building", description="Clock tower on the Embarcadero.")
    assert build_description(_details(), hint) == (
        "Historic ferry terminal with a food hall. Clock tower on the Embarcadero."
    )


def test_editorial_same_as_vision():
    hint = VisionHint(description="Historic ferry terminal with a food hall.")
    assert build_description(_details(), hint) == "Historic ferry terminal with a food hall."


def test_vision_only_description():
    hint = VisionHint(description="A tall clock tower.")
    assert build_description(_details(editorial_summary=None), hint) == "A tall clock tower."


def test_generated_sentence():
    text = build_description(_details(editorial_summary=None), None)
    assert text == "Ferry Building is a tourist attraction located at 1 Ferry Building, San Francisco, CA."


def test_order_and_labels():
    hint = VisionHint(
        name="Ferry Building",
        details="Clock tower modeled on the Giralda.",
        significance="Survived the 1906 earthquake.",
        architectural_style="Beaux-Arts",
        construction_year="1898",
    )
    parts = build_details(_details(), hint).split("\n\n")
    assert parts == [
        "Historic ferry terminal with a food hall.",
        "Clock tower modeled on the Giralda.",
        "Significance: Survived the 1906 earthquake.",
        "Architectural Style: Beaux-Arts",
        "Built: 1898",
        "Address: 1 Ferry Building, San Francisco, CA",
        "Rating: 4.7/5 (20000 reviews)",
        "Phone: (415) 983-8000",
        "Hours: Monday: 7:00 AM - 10:00 PM",
        'Review: "Great market."',
    ]


def test_sparse_record():
    details = _details(
        editorial_summary=None,
        phone=None,
        rating=None,
        opening_hours=(),
        reviews=(),
    )
    assert build_details(details, None) == "Address: 1 Ferry Building, San Francisco, CA"


def test_vision_details():
    hint = VisionHint(details="Red brick.", architectural_style="Victorian")
    assert build_vision_details(hint) == "Red brick.\n\nArchitectural style: Victorian"
