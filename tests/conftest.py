from unittest.mock import MagicMock

import pytest
import requests

from zerowaste_osm.geocode import NominatimGeocoder, RequestThrottle
from zerowaste_osm.settings import GeocodeSettings


def make_response(payload=None, status_code=200, json_error=False, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = payload
    if response.ok:
        response.raise_for_status.return_value = None
    else:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Server Error")
    return response


def nominatim_place(lat, lon, name="Place", address=None, extratags=None):
    return {
        "lat": str(lat),
        "lon": str(lon),
        "display_name": name,
        "address": address or {},
        "extratags": extratags or {},
    }


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    fake = MagicMock()
    fake.headers = {}
    return fake


@pytest.fixture
def geocoder(session, clock):
    throttle = RequestThrottle(1.0, clock=clock, sleep=clock.sleep)
    return NominatimGeocoder(GeocodeSettings(), session=session, throttle=throttle)
