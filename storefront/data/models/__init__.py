#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w Base.metadata

from storefront.data.models.store import StoreModel
from storefront.data.models.product import ProductModel, ProductVariantModel
from storefront.data.models.order import OrderModel, OrderItemModel
from storefront.data.models.integration import IntegrationInstallationModel, IntegrationEventModel
from storefront.data.models.abandoned_checkout import AbandonedCheckoutModel

__all__ = [
    "StoreModel",
    "ProductModel",
    "ProductVariantModel",
    "OrderModel",
    "OrderItemModel",
    "IntegrationInstallationModel",
    "IntegrationEventModel",
    "AbandonedCheckoutModel",
]
