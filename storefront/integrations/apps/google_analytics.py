# storefront/integrations/apps/google_analytics.py
from storefront.integrations.base import AppDefinition, StoreContext
from storefront.utils.settings import Settings


def handle_google_analytics(event_type: str, payload: dict, config: dict, store: StoreContext, settings: Settings) -> None:
    #tracking jest po stronie przegladarki, serwer nie wysyla nic
    return None


google_analytics_app = AppDefinition(
    id="google-analytics",
    name="Google Analytics",
    description="Add Google Analytics tracking to measure store traffic and e-commerce performance.",
    category="analytics",
    handler=handle_google_analytics,
    events=frozenset(),
)
