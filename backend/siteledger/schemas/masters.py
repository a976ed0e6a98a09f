"""Master data schemas

Companies, zones, sites, departments, units, rental categories, cashbook
heads, items, vendors and assets.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import Field
from siteledger.schemas.common import ApiModel


class MasterOut(ApiModel):
    id: int
    created_at: datetime
    updated_at: datetime


# Companies


class CompanyCreate(ApiModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    short_name: Optional[str] = Field(None, max_length=50)
    contact_person: Optional[str] = None
    contact_no: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_no: Optional[str] = Field(None, max_length=20)
    pan_no: Optional[str] = Field(None, max_length=20)
    logo_url: Optional[str] = None


class CompanyUpdate(CompanyCreate):
    company_name: Optional[str] = Field(None, min_length=1, max_length=255)


class CompanyOut(MasterOut):
    company_name: str
    short_name: Optional[str] = None
    contact_person: Optional[str] = None
    contact_no: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_no: Optional[str] = None
    pan_no: Optional[str] = None
    logo_url: Optional[str] = None


# Zones


class ZoneCreate(ApiModel):
    zone_name: str = Field(..., min_length=1, max_length=100)


class ZoneUpdate(ApiModel):
    zone_name: Optional[str] = Field(None, min_length=1, max_length=100)


class ZoneOut(MasterOut):
    zone_name: str


# Sites


class SiteCreate(ApiModel):
    site: str = Field(..., min_length=1, max_length=255)
    short_name: Optional[str] = Field(None, max_length=50)
    company_id: Optional[int] = None
    zone_id: Optional[int] = None
    site_status: str = Field("Ongoing", pattern="^(Ongoing|Hold|Closed|Completed)$")
    uin_no: Optional[str] = None
    address: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class SiteUpdate(SiteCreate):
    site: Optional[str] = Field(None, min_length=1, max_length=255)
    site_status: Optional[str] = Field(None, pattern="^(Ongoing|Hold|Closed|Completed)$")


class SiteOut(MasterOut):
    site: str
    short_name: Optional[str] = None
    company_id: Optional[int] = None
    zone_id: Optional[int] = None
    site_status: str
    uin_no: Optional[str] = None
    address: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class SiteOption(ApiModel):
    id: int
    site: str


# Departments


class DepartmentCreate(ApiModel):
    department: str = Field(..., min_length=1, max_length=100)


class DepartmentUpdate(ApiModel):
    department: Optional[str] = Field(None, min_length=1, max_length=100)


class DepartmentOut(MasterOut):
    department: str


# Units


class UnitCreate(ApiModel):
    unit_name: str = Field(..., min_length=1, max_length=50)


class UnitUpdate(ApiModel):
    unit_name: Optional[str] = Field(None, min_length=1, max_length=50)


class UnitOut(MasterOut):
    unit_name: str


# Rental categories


class RentalCategoryCreate(ApiModel):
    rental_category: str = Field(..., min_length=1, max_length=100)


class RentalCategoryUpdate(ApiModel):
    rental_category: Optional[str] = Field(None, min_length=1, max_length=100)


class RentalCategoryOut(MasterOut):
    rental_category: str


# Cashbook heads


class CashbookHeadCreate(ApiModel):
    cashbook_head_name: str = Field(..., min_length=1, max_length=100)


class CashbookHeadUpdate(ApiModel):
    cashbook_head_name: Optional[str] = Field(None, min_length=1, max_length=100)


class CashbookHeadOut(MasterOut):
    cashbook_head_name: str


# Items


class ItemCreate(ApiModel):
    item_code: str = Field(..., min_length=1, max_length=50)
    item: str = Field(..., min_length=1, max_length=255)
    unit_id: Optional[int] = None
    hsn_code: Optional[str] = Field(None, max_length=20)
    gst_rate: float = Field(0.0, ge=0, le=100)
    discontinue: bool = False


class ItemUpdate(ItemCreate):
    item_code: Optional[str] = Field(None, min_length=1, max_length=50)
    item: Optional[str] = Field(None, min_length=1, max_length=255)
    gst_rate: Optional[float] = Field(None, ge=0, le=100)
    discontinue: Optional[bool] = None


class ItemOut(MasterOut):
    item_code: str
    item: str
    unit_id: Optional[int] = None
    hsn_code: Optional[str] = None
    gst_rate: float
    discontinue: bool


# Vendors


class VendorCreate(ApiModel):
    vendor_name: str = Field(..., min_length=1, max_length=255)
    contact_person: Optional[str] = None
    contact_no: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_no: Optional[str] = Field(None, max_length=20)
    pan_no: Optional[str] = Field(None, max_length=20)


class VendorUpdate(VendorCreate):
    vendor_name: Optional[str] = Field(None, min_length=1, max_length=255)


class VendorOut(MasterOut):
    vendor_name: str
    contact_person: Optional[str] = None
    contact_no: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gst_no: Optional[str] = None
    pan_no: Optional[str] = None


# Assets


class AssetGroupCreate(ApiModel):
    asset_group_name: str = Field(..., min_length=1, max_length=100)


class AssetGroupUpdate(ApiModel):
    asset_group_name: Optional[str] = Field(None, min_length=1, max_length=100)


class AssetGroupOut(MasterOut):
    asset_group_name: str


class AssetCategoryCreate(ApiModel):
    asset_group_id: int
    category: str = Field(..., min_length=1, max_length=100)


class AssetCategoryUpdate(ApiModel):
    asset_group_id: Optional[int] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)


class AssetCategoryOut(MasterOut):
    asset_group_id: int
    category: str


ASSET_STATUS = "^(Working|Not Working|Under Repair|Scrap)$"
ASSET_USE_STATUS = "^(In Use|Idle)$"
ASSET_TRANSFER_STATUS = "^(Available|In Transit|Assigned)$"


class AssetCreate(ApiModel):
    asset_no: Optional[str] = Field(None, max_length=50)
    asset_group_id: int
    asset_category_id: int
    asset_name: str = Field(..., min_length=1, max_length=255)
    make: Optional[str] = None
    description: Optional[str] = None
    purchase_date: Optional[date] = None
    invoice_no: Optional[str] = None
    supplier: Optional[str] = None
    invoice_copy_url: Optional[str] = None
    next_maintenance_date: Optional[date] = None
    status: str = Field("Working", pattern=ASSET_STATUS)
    use_status: str = Field("In Use", pattern=ASSET_USE_STATUS)
    transfer_status: str = Field("Available", pattern=ASSET_TRANSFER_STATUS)
    current_site_id: Optional[int] = None


class AssetUpdate(ApiModel):
    asset_no: Optional[str] = Field(None, min_length=1, max_length=50)
    asset_group_id: Optional[int] = None
    asset_category_id: Optional[int] = None
    asset_name: Optional[str] = Field(None, min_length=1, max_length=255)
    make: Optional[str] = None
    description: Optional[str] = None
    purchase_date: Optional[date] = None
    invoice_no: Optional[str] = None
    supplier: Optional[str] = None
    invoice_copy_url: Optional[str] = None
    next_maintenance_date: Optional[date] = None
    status: Optional[str] = Field(None, pattern=ASSET_STATUS)
    use_status: Optional[str] = Field(None, pattern=ASSET_USE_STATUS)
    transfer_status: Optional[str] = Field(None, pattern=ASSET_TRANSFER_STATUS)
    current_site_id: Optional[int] = None


class AssetOut(MasterOut):
    asset_no: str
    asset_group_id: int
    asset_category_id: int
    asset_name: str
    make: Optional[str] = None
    description: Optional[str] = None
    purchase_date: Optional[date] = None
    invoice_no: Optional[str] = None
    supplier: Optional[str] = None
    invoice_copy_url: Optional[str] = None
    next_maintenance_date: Optional[date] = None
    status: str
    use_status: str
    transfer_status: str
    current_site_id: Optional[int] = None
