# storefront/integrations/registry.py
"""
Statyczna tabela integracji: id -> obslugiwane eventy + handler.
Brak rejestracji w runtime, nowa integracja = zmiana w kodzie.
"""
from types import MappingProxyType

from storefront.integrations.apps.google_analytics import google_analytics_app
from storefront.integrations.apps.google_sheets import google_sheets_app
from storefront.integrations.apps.meta_capi import meta_capi_app
from storefront.integrations.apps.tiktok_eapi import tiktok_eapi_app
from storefront.integrations.apps.whatsapp import whatsapp_app

APPS = MappingProxyType({
    app.id: app
    for app in (
        whatsapp_app,
        meta_capi_app,
        tiktok_eapi_app,
        google_sheets_app,
        google_analytics_app,
    )
})


def get_app(integration_id: str):
    return APPS.get(integration_id)
