"""Contact details from schema.org JSON-LD markup on business websites."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator, List, Optional
from urllib.parse import urlparse
from urllib.robotparser import RobotFileParser

import requests
from bs4 import BeautifulSoup

from .models import Lookup, WebsiteDetails
from .settings import WebsiteSettings

logger = logging.getLogger(__name__)

BUSINESS_TYPES = {"LocalBusiness", "Store", "Restaurant", "Cafe", "Shop", "Organization"}
SCHEMA_ORG_PREFIXES = ("https://schema.org/", "http://schema.org/")


def _iter_ld_json(soup: BeautifulSoup) -> Iterator[Any]:
    for node in soup.find_all("script", attrs={"type": "application/ld+json"}):
        text = node.string
        if not text:
            continue
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Failed to decode ld+json block", exc_info=True)
            continue
        if isinstance(data, list):
            yield from data
        else:
            yield data


def _is_business(data: dict) -> bool:
    kind = data.get("@type")
    if isinstance(kind, list):
        return any(item in BUSINESS_TYPES for item in kind)
    return isinstance(kind, str) and kind in BUSINESS_TYPES


def _strip_schema_prefix(value: str) -> str:
    for prefix in SCHEMA_ORG_PREFIXES:
        if value.startswith(prefix):
            return value[len(prefix) :]
    return value


def format_opening_hours_specification(spec: Any) -> Optional[str]:
    """Render ``openingHoursSpecification`` as ``"Monday, Tuesday: 09:00-18:00, ..."``."""

    if not isinstance(spec, list) or not spec:
        return None
    parts: List[str] = []
    for item in spec:
        if not isinstance(item, dict):
            continue
        days = item.get("dayOfWeek") or ""
        if isinstance(days, list):
            days = ", ".join(_strip_schema_prefix(str(day)) for day in days)
        else:
            days = _strip_schema_prefix(str(days))
        opens, closes = item.get("opens"), item.get("closes")
        if not days or not opens or not closes:
            continue
        parts.append(f"{days}: {opens}-{closes}")
    return ", ".join(parts) or None


def _collect(data: Any, details: WebsiteDetails) -> None:
    if isinstance(data, list):
        for item in data:
            _collect(item, details)
        return
    if not isinstance(data, dict):
        return

    if not _is_business(data):
        for value in data.values():
            if isinstance(value, (dict, list)):
                _collect(value, details)
        return

    if not details.phone and data.get("telephone"):
        details.phone = str(data["telephone"])
    if not details.email and data.get("email"):
        details.email = str(data["email"])
    if not details.instagram and data.get("sameAs"):
        links = data["sameAs"] if isinstance(data["sameAs"], list) else [data["sameAs"]]
        for link in map(str, links):
            if "instagram.com/" in link:
                details.instagram = link
                break
    if not details.opening_hours:
        hours = data.get("openingHours")
        if isinstance(hours, list):
            hours = ", ".join(str(item) for item in hours)
        if hours:
            details.opening_hours = str(hours)
        else:
            details.opening_hours = format_opening_hours_specification(data.get("openingHoursSpecification"))


def extract_schema_org_details(html: str) -> WebsiteDetails:
    """Collect business contact details from every JSON-LD block in ``html``."""

    details = WebsiteDetails()
    soup = BeautifulSoup(html, "html.parser")
    for data in _iter_ld_json(soup):
        _collect(data, details)
        if details.is_complete():
            break
    return details


class WebsiteEnricher:
    """Fetch a business website and read its schema.org markup."""

    def __init__(self, settings: Optional[WebsiteSettings] = None, session: Optional[requests.Session] = None) -> None:
        self.settings = settings or WebsiteSettings()
        self._session = session or requests.Session()
        self._session.headers.update(self.settings.headers())

    def robots_allowed(self, url: str) -> bool:
        """Check robots.txt for ``url``; an unreachable robots.txt allows crawling."""

        parsed = urlparse(url)
        robots_url = f"{parsed.scheme}://{parsed.netloc}/robots.txt"
        try:
            response = self._session.get(robots_url, timeout=self.settings.robots_timeout)
        except requests.RequestException:
            logger.debug("Could not fetch %s", robots_url, exc_info=True)
            return True
        if not response.ok:
            return True
        parser = RobotFileParser(robots_url)
        parser.parse(response.text.splitlines())
        return parser.can_fetch(self.settings.robots_agent, url)

    def enrich(self, url: str) -> Lookup[WebsiteDetails]:
        if not url or not url.strip():
            return Lookup(error="Website URL is required")
        url = url.strip()
        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            return Lookup(error="Invalid URL format")

        if not self.robots_allowed(url):
            logger.info("Crawling %s disallowed by robots.txt", url)
            return Lookup(error="Crawling not allowed by robots.txt")

        try:
            response = self._session.get(url, timeout=self.settings.timeout)
            response.raise_for_status()
        except requests.Timeout:
            logger.warning("Timed out fetching %s", url)
            return Lookup(error="Request timeout")
        except requests.RequestException as exc:
            logger.warning("Fetching %s failed", url, exc_info=True)
            return Lookup(error=str(exc))

        details = extract_schema_org_details(response.text)
        logger.debug("Extracted %s from %s", details, url)
        return Lookup(details)
