# storefront/integrations/base.py
import hashlib
import re
from dataclasses import dataclass, field
from typing import Callable

EVENT_ORDER_CREATED = "order.created"
EVENT_ORDER_STATUS_CHANGED = "order.status_changed"
EVENT_CHECKOUT_ABANDONED = "checkout.abandoned"


@dataclass(frozen=True)
class StoreContext:
    id: str
    name: str
    currency: str
    language: str = "en"


# handler(event_type, payload, config, store, settings=...) -> dict | None, blad = wyjatek
# zwrocony dict to zmiany configu instalacji (np. odswiezony token), dispatcher je zapisuje
Handler = Callable[..., dict | None]


@dataclass(frozen=True)
class AppDefinition:
    id: str
    name: str
    description: str
    category: str  # notifications, analytics, productivity
    handler: Handler
    events: frozenset = field(default_factory=frozenset)

    def supports(self, event_type: str) -> bool:
        return event_type in self.events


def hash_sha256(value: str) -> str:
    return hashlib.sha256(value.lower().strip().encode("utf-8")).hexdigest()


def normalize_phone_for_hash(phone: str) -> str:
    return re.sub(r"[^0-9]", "", phone)


def split_name(full_name: str) -> tuple[str, str]:
    parts = (full_name or "").strip().split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


COUNTRY_CODES = {
    "algeria": "dz",
    "argentina": "ar",
    "australia": "au",
    "austria": "at",
    "bahrain": "bh",
    "belgium": "be",
    "brazil": "br",
    "canada": "ca",
    "china": "cn",
    "denmark": "dk",
    "egypt": "eg",
    "finland": "fi",
    "france": "fr",
    "germany": "de",
    "greece": "gr",
    "india": "in",
    "indonesia": "id",
    "ireland": "ie",
    "italy": "it",
    "japan": "jp",
    "jordan": "jo",
    "kuwait": "kw",
    "lebanon": "lb",
    "libya": "ly",
    "malaysia": "my",
    "mauritania": "mr",
    "mexico": "mx",
    "morocco": "ma",
    "netherlands": "nl",
    "nigeria": "ng",
    "norway": "no",
    "oman": "om",
    "pakistan": "pk",
    "poland": "pl",
    "portugal": "pt",
    "qatar": "qa",
    "romania": "ro",
    "saudi arabia": "sa",
    "senegal": "sn",
    "south africa": "za",
    "spain": "es",
    "sweden": "se",
    "switzerland": "ch",
    "tunisia": "tn",
    "turkey": "tr",
    "united arab emirates": "ae",
    "united kingdom": "gb",
    "united states": "us",
}


def resolve_country_iso(country: str | None) -> str | None:
    if not country:
        return None
    lower = country.strip().lower()
    if len(lower) == 2:
        return lower
    return COUNTRY_CODES.get(lower)
