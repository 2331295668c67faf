import threading
from unittest.mock import patch

import requests

from conftest import make_response, nominatim_place
from zerowaste_osm.geocode import NO_RESULTS, RequestThrottle, simplify_business_name
from zerowaste_osm.models import MatchType

FRANKFURT = (50.1109, 8.6821)


def test_simplify_business_name_strips_suffix():
    assert simplify_business_name("Die Auffüllerei - unverpackt einkaufen") == "Die Auffüllerei"


def test_simplify_business_name_handles_other_separators():
    assert simplify_business_name("Laden | Bio") == "Laden"
    assert simplify_business_name("Laden_Bio") == "Laden"
    assert simplify_business_name("Laden – Bio") == "Laden"
    assert simplify_business_name("Laden—Bio") == "Laden"


def test_simplify_business_name_returns_none_when_unchanged():
    assert simplify_business_name("NoSeparatorName") is None
    assert simplify_business_name("  NoSeparatorName  ") is None
    assert simplify_business_name("- leading") is None


def test_simplify_business_name_keeps_hyphenated_words():
    assert simplify_business_name("Bio-Laden Frankfurt") is None
    assert simplify_business_name("Bio-Laden - Frankfurt") == "Bio-Laden"


def test_throttle_spaces_consecutive_requests(clock):
    throttle = RequestThrottle(1.0, clock=clock, sleep=clock.sleep)
    throttle.wait()
    assert clock.sleeps == []
    clock.now += 0.25
    throttle.wait()
    assert clock.sleeps == [0.75]
    clock.now += 5
    throttle.wait()
    assert clock.sleeps == [0.75]


def test_search_sends_expected_params_and_user_agent(geocoder, session):
    session.get.return_value = make_response([])

    geocoder.search("Unverpackt", 50.1, 8.6)

    url = session.get.call_args.args[0]
    params = session.get.call_args.kwargs["params"]
    assert url == "https://nominatim.openstreetmap.org/search"
    assert params["q"] == "Unverpackt"
    assert params["limit"] == "5"
    assert params["addressdetails"] == "1"
    assert params["extratags"] == "1"
    assert params["lat"] == "50.1"
    assert params["lon"] == "8.6"
    assert session.get.call_args.kwargs["timeout"] == 10.0
    assert "ZeroWasteFrankfurt" in session.headers["User-Agent"]


def test_search_parses_candidates_and_skips_invalid(geocoder, session):
    session.get.return_value = make_response(
        [
            nominatim_place(50.1, 8.6, address={"road": "Berger Straße", "house_number": "12", "town": "Bad Vilbel"}),
            {"lat": "oops", "lon": "8.6"},
        ]
    )

    candidates = geocoder.search("x")

    assert len(candidates) == 1
    assert candidates[0].address.street == "Berger Straße 12"
    assert candidates[0].address.city == "Bad Vilbel"


def test_geocode_returns_first_result(geocoder, session):
    session.get.return_value = make_response([nominatim_place(50.11, 8.68, name="Frankfurt am Main")])

    lookup = geocoder.geocode("Frankfurt")

    assert lookup.ok
    assert lookup.result.latitude == 50.11
    assert lookup.result.display_name == "Frankfurt am Main"
    assert session.get.call_args.kwargs["params"]["limit"] == "1"


def test_geocode_blank_input_makes_no_request(geocoder, session):
    lookup = geocoder.geocode("   ")

    assert lookup.result is None and lookup.error is None
    session.get.assert_not_called()


def test_geocode_reports_no_results(geocoder, session):
    session.get.return_value = make_response([])

    assert geocoder.geocode("nowhere").error == NO_RESULTS


def test_geocode_reports_transport_error(geocoder, session):
    session.get.side_effect = requests.ConnectionError("connection refused")

    lookup = geocoder.geocode("Frankfurt")

    assert lookup.result is None
    assert lookup.error == "connection refused"


def test_geocode_reports_http_error(geocoder, session):
    session.get.return_value = make_response(status_code=503)

    assert geocoder.geocode("Frankfurt").error == "503 Server Error"


def test_geocode_maps_malformed_json(geocoder, session):
    session.get.return_value = make_response(json_error=True)

    assert geocoder.geocode("Frankfurt").error == "Malformed response from geocoding provider"


def test_reverse_geocode_builds_address(geocoder, session):
    session.get.return_value = make_response(
        {
            "display_name": "Berger Straße 12, Frankfurt",
            "address": {
                "road": "Berger Straße",
                "house_number": "12",
                "city": "Frankfurt am Main",
                "postcode": "60316",
                "suburb": "Nordend-Ost",
            },
        }
    )

    lookup = geocoder.reverse_geocode(50.12, 8.69)

    assert lookup.result.address == "Berger Straße 12"
    assert lookup.result.city == "Frankfurt am Main"
    assert lookup.result.postal_code == "60316"
    assert lookup.result.suburb == "Nordend-Ost"
    assert session.get.call_args.args[0] == "https://nominatim.openstreetmap.org/reverse"


def test_reverse_geocode_error_body(geocoder, session):
    session.get.return_value = make_response({"error": "Unable to geocode"})

    lookup = geocoder.reverse_geocode(0.0, 0.0)

    assert lookup.result is None
    assert lookup.error == "Unable to geocode"


def test_reverse_geocode_nan_makes_no_request(geocoder, session):
    lookup = geocoder.reverse_geocode(float("nan"), 8.6)

    assert lookup.result is None
    session.get.assert_not_called()


def test_search_with_extras_enriches_name_match(geocoder, session):
    session.get.return_value = make_response(
        [
            nominatim_place(
                50.1115,
                8.6825,
                address={"road": "Leipziger Straße", "house_number": "3", "city": "Frankfurt am Main", "postcode": "60487"},
                extratags={
                    "phone": "+49 69 1",
                    "contact:phone": "+49 69 2",
                    "website": "https://example.org",
                    "opening_hours": "Mo-Fr 09:00-18:00; Su off",
                    "payment:cash": "yes",
                    "wheelchair": "yes",
                },
            )
        ]
    )

    lookup = geocoder.search_with_extras("Unverpackt", *FRANKFURT)
    result = lookup.result

    assert result.match_type is MatchType.NAME_SEARCH
    assert result.address == "Leipziger Straße 3"
    assert result.postal_code == "60487"
    assert result.phone == "+49 69 2"
    assert result.website == "https://example.org"
    assert result.opening_hours_osm == "Mo-Fr 09:00-18:00; Su off"
    assert result.opening_hours_formatted == "Mo-Fr 09:00-18:00, So geschlossen"
    assert len(result.opening_hours_structured.entries) == 5
    assert result.payment_methods.as_dict() == {"cash": True}
    assert result.facilities.as_dict() == {"wheelchair": True}
    assert result.distance_km < 0.1
    assert session.get.call_count == 1


def test_search_with_extras_falls_back_to_simplified_name(geocoder, session):
    session.get.side_effect = [
        make_response([]),
        make_response([nominatim_place(50.1110, 8.6822)]),
    ]

    lookup = geocoder.search_with_extras("Die Auffüllerei - unverpackt einkaufen", *FRANKFURT)

    assert session.get.call_count == 2
    queries = [call.kwargs["params"]["q"] for call in session.get.call_args_list]
    assert queries == ["Die Auffüllerei - unverpackt einkaufen", "Die Auffüllerei"]
    assert lookup.result.match_type is MatchType.NAME_SEARCH


def test_search_with_extras_reverse_fallback(geocoder, session):
    session.get.side_effect = [
        make_response([]),
        make_response([]),
        make_response({"address": {"road": "Zeil", "house_number": "1", "city": "Frankfurt am Main"}}),
    ]

    lookup = geocoder.search_with_extras("Laden - Bio", *FRANKFURT)
    result = lookup.result

    urls = [call.args[0] for call in session.get.call_args_list]
    assert urls.count("https://nominatim.openstreetmap.org/reverse") == 1
    assert urls[-1].endswith("/reverse")
    assert result.match_type is MatchType.REVERSE_GEOCODE
    assert (result.latitude, result.longitude) == FRANKFURT
    assert result.address == "Zeil 1"
    assert result.phone is None and result.website is None
    assert result.email is None and result.instagram is None
    assert result.payment_methods is None and result.facilities is None


def test_search_with_extras_rejects_far_candidates(geocoder, session):
    berlin = nominatim_place(52.52, 13.405)
    session.get.side_effect = [
        make_response([berlin]),
        make_response({"address": {"road": "Zeil"}}),
    ]

    lookup = geocoder.search_with_extras("Unverpackt", *FRANKFURT)

    assert lookup.result.match_type is MatchType.REVERSE_GEOCODE


def test_search_with_extras_picks_closest_not_first(geocoder, session):
    session.get.return_value = make_response(
        [
            nominatim_place(50.1200, 8.6900, name="further"),
            nominatim_place(50.1110, 8.6822, name="closest"),
        ]
    )

    lookup = geocoder.search_with_extras("Unverpackt", *FRANKFURT)

    assert lookup.result.latitude == 50.1110


def test_search_with_extras_without_reference_accepts_first(geocoder, session):
    session.get.return_value = make_response([nominatim_place(52.52, 13.405), nominatim_place(50.11, 8.68)])

    lookup = geocoder.search_with_extras("Unverpackt")

    assert lookup.result.latitude == 52.52
    assert lookup.result.distance_km is None
    assert "lat" not in session.get.call_args.kwargs["params"]


def test_search_with_extras_no_reference_no_reverse(geocoder, session):
    session.get.return_value = make_response([])

    lookup = geocoder.search_with_extras("Nothing Here")

    assert lookup.error == NO_RESULTS
    assert session.get.call_count == 1


def test_search_with_extras_transport_error_continues_chain(geocoder, session):
    session.get.side_effect = [
        requests.Timeout("read timed out"),
        make_response([nominatim_place(50.1110, 8.6822)]),
    ]

    lookup = geocoder.search_with_extras("Laden - Bio", *FRANKFURT)

    assert lookup.result.match_type is MatchType.NAME_SEARCH


def test_search_with_extras_all_attempts_fail(geocoder, session):
    session.get.side_effect = requests.ConnectionError("offline")

    lookup = geocoder.search_with_extras("Laden - Bio", *FRANKFURT)

    assert lookup.result is None
    assert lookup.error == "offline"
    assert session.get.call_count == 3


def test_requests_are_throttled_across_the_chain(geocoder, session, clock):
    session.get.side_effect = [
        make_response([]),
        make_response([]),
        make_response({"address": {}}),
    ]

    geocoder.search_with_extras("Laden - Bio", *FRANKFURT)

    assert clock.sleeps == [1.0, 1.0]


def test_throttle_serializes_threads():
    throttle = RequestThrottle(0.0)
    calls = []

    def worker():
        throttle.wait()
        calls.append(1)

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 5


def test_module_functions_share_default_geocoder(monkeypatch):
    from zerowaste_osm import geocode as module

    monkeypatch.setattr(module, "_default_geocoder", None)
    first = module.get_default_geocoder()

    assert module.get_default_geocoder() is first
    with patch.object(first, "search_with_extras", return_value="sentinel") as mock_search:
        assert module.search_with_extras("Laden", 50.1, 8.6) == "sentinel"
    mock_search.assert_called_once_with("Laden", 50.1, 8.6)
