# zomatify/repos/vendor_repo.py
from typing import Any, Dict

from sqlalchemy.orm import Session

from zomatify.data.models.vendor_settings import VendorSettingsModel


class VendorRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_settings(self, vendor_id: str) -> VendorSettingsModel | None:
        return self.db.get(VendorSettingsModel, vendor_id)

    def upsert_settings(self, vendor_id: str, changes: Dict[str, Any]) -> VendorSettingsModel:
        settings = self.get_settings(vendor_id)
        if settings is None:
            settings = VendorSettingsModel(vendor_id=vendor_id)
            self.db.add(settings)
        for field, value in changes.items():
            setattr(settings, field, value)
        self.db.commit()
        self.db.refresh(settings)
        return settings
