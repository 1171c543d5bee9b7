# zomatify/services/vendor_service.py
from sqlalchemy.orm import Session

from zomatify.data.models.vendor_settings import VendorSettingsModel
from zomatify.domain.schemas import VendorSettingsUpdate
from zomatify.exceptions import VendorNotFoundError
from zomatify.repos.vendor_repo import VendorRepo
from zomatify.utils.logging import get_logger

logger = get_logger(__name__)


class VendorService:
    """Order-taking switches a vendor controls from the dashboard."""

    def __init__(self, db: Session):
        self.repo = VendorRepo(db)

    def get_settings(self, vendor_id: str) -> VendorSettingsModel:
        settings = self.repo.get_settings(vendor_id)
        if settings is None:
            raise VendorNotFoundError("Vendor settings not configured")
        return settings

    def update_settings(self, vendor_id: str, payload: VendorSettingsUpdate) -> VendorSettingsModel:
        # first write creates the row with defaults for the fields not given
        changes = payload.model_dump(exclude_none=True)
        settings = self.repo.upsert_settings(vendor_id, changes)
        logger.info(f"Vendor {vendor_id} settings updated: {changes}")
        return settings
