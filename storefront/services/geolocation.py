# storefront/services/geolocation.py
import requests
from requests import RequestException

from storefront.utils.settings import Settings, settings as default_settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_COUNTRY = "Unknown"
_LOCAL_ADDRESSES = {"127.0.0.1", "::1", "localhost"}


class GeoLocator:
    """Kraj po IP, best effort. Kazdy blad -> "Unknown", nigdy nie blokuje zamowienia."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    def country_for_ip(self, ip: str | None) -> str:
        if not ip or ip in _LOCAL_ADDRESSES:
            return UNKNOWN_COUNTRY

        try:
            country = self._fetch_country(ip)
        except RequestException as e:
            logger.warning(f"Geolocation lookup failed for {ip}: {e}")
            return UNKNOWN_COUNTRY

        if not country or "error" in country.lower():
            return UNKNOWN_COUNTRY
        return country

    # bez retry, lookup blokuje zamowienie najwyzej geoip_timeout sekund
    def _fetch_country(self, ip: str) -> str:
        url = f"{self.settings.geoip_url.rstrip('/')}/{ip}/country_name/"
        logger.info(f"GeoLocator GET {url}")

        resp = requests.get(url, timeout=self.settings.geoip_timeout)
        resp.raise_for_status()
        return resp.text.strip()
