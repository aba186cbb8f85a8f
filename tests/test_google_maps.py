from maps_reviews.scraper.document import ReviewDocument
from maps_reviews.scraper.google_maps import GoogleMapsPage


def test_with_locale_replaces_existing_language() -> None:
    url = "https://www.google.com/maps/place/Cafe?hl=es&entry=ttu"

    assert GoogleMapsPage.with_locale(url, "en") == "https://www.google.com/maps/place/Cafe?entry=ttu&hl=en"


def test_with_locale_adds_language() -> None:
    assert GoogleMapsPage.with_locale("https://www.google.com/maps/place/Cafe", "de") == (
        "https://www.google.com/maps/place/Cafe?hl=de"
    )


def test_page_satisfies_document_protocol(document_factory) -> None:
    assert isinstance(GoogleMapsPage(), ReviewDocument)
    assert isinstance(document_factory([]), ReviewDocument)
