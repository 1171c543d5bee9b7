# import every model so SQLAlchemy registers it in Base.metadata

from zomatify.data.models.order import OrderModel
from zomatify.data.models.vendor_settings import VendorSettingsModel

__all__ = ["OrderModel", "VendorSettingsModel"]
