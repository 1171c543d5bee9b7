# zomatify/api/routers/vendors.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from zomatify.data.database import get_db
from zomatify.domain.schemas import VendorSettingsOut, VendorSettingsUpdate
from zomatify.exceptions import VendorNotFoundError
from zomatify.services.vendor_service import VendorService

router = APIRouter(prefix="/api/vendors", tags=["vendors"])


@router.get("/{vendor_id}/settings", response_model=VendorSettingsOut)
def get_vendor_settings(vendor_id: str, db: Session = Depends(get_db)):
    try:
        return VendorSettingsOut.model_validate(VendorService(db).get_settings(vendor_id))
    except VendorNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.put("/{vendor_id}/settings", response_model=VendorSettingsOut)
def update_vendor_settings(
    vendor_id: str,
    payload: VendorSettingsUpdate,
    db: Session = Depends(get_db),
):
    """Creates the settings row on first write."""
    return VendorSettingsOut.model_validate(VendorService(db).update_settings(vendor_id, payload))
