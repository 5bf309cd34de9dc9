from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ServiceType(str, Enum):
    CHUTE_CLEANING = "chute_cleaning"
    EQUIPMENT_MAINTENANCE = "equipment_maintenance"
    HOPPER_DOOR_INSPECTION = "hopper_door_inspection"
    WASTE_ROOM_PRESSURE_CLEAN = "waste_room_pressure_clean"
    BIN_CLEANING = "bin_cleaning"
    ODOUR_CONTROL = "odour_control"


# Loosely typed numeric fields arrive as "450.00", "$310.00", 12 or null.
PriceLike = Union[float, str, None]


def _text_or_none(v: Any) -> Optional[str]:
    if v is None:
        return None
    if isinstance(v, str):
        return v
    if isinstance(v, (int, float, bool)):
        return str(v)
    return None


def _compact_list(v: Any) -> list:
    """Treat a missing list as empty and drop null entries."""
    if not isinstance(v, list):
        return []
    return [item for item in v if item]


class Service(BaseModel):
    """
    One priced line item inside a building.
    `type` decides which optional fields matter (chutes/levels for chute cleaning,
    equipment fields for maintenance, bin_size for bins, area_label for waste rooms).
    """
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    type: Optional[str] = None
    price: PriceLike = None
    quantity: PriceLike = None
    chutes: PriceLike = None
    levels: PriceLike = None
    area_label: Optional[str] = None
    equipment: Optional[str] = None
    equipment_label: Optional[str] = None
    bin_size: Optional[str] = None

    @field_validator("id", "type", "area_label", "equipment", "equipment_label", "bin_size", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return _text_or_none(v)

    @field_validator("price", "quantity", "chutes", "levels", mode="before")
    @classmethod
    def coerce_price_like(cls, v: Any) -> PriceLike:
        if isinstance(v, bool):
            return None
        if isinstance(v, (int, float, str)) or v is None:
            return v
        return None


class Building(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: Optional[str] = None
    services: List[Service] = Field(default_factory=list)

    @field_validator("id", "name", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return _text_or_none(v)

    @field_validator("services", mode="before")
    @classmethod
    def normalize_services(cls, v: Any) -> list:
        return _compact_list(v)


class Site(BaseModel):
    model_config = ConfigDict(extra="ignore")

    site_name: Optional[str] = None
    simpro_site_id: Optional[str] = None
    site_address: Optional[Dict[str, Any]] = None
    buildings: List[Building] = Field(default_factory=list)

    @field_validator("site_name", "simpro_site_id", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return _text_or_none(v)

    @field_validator("site_address", mode="before")
    @classmethod
    def normalize_address(cls, v: Any) -> Optional[dict]:
        return v if isinstance(v, dict) else None

    @field_validator("buildings", mode="before")
    @classmethod
    def normalize_buildings(cls, v: Any) -> list:
        return _compact_list(v)


class ServiceAgreement(BaseModel):
    """The agreement record: term, sites and commercial flags."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    expire_at: Optional[str] = None
    sites: List[Site] = Field(default_factory=list)
    incentives: bool = False
    salesperson: Optional[str] = None
    quote_for: Optional[str] = None

    @field_validator("id", "start_date", "end_date", "expire_at", "salesperson", "quote_for", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return _text_or_none(v)

    @field_validator("sites", mode="before")
    @classmethod
    def normalize_sites(cls, v: Any) -> list:
        return _compact_list(v)

    @field_validator("incentives", mode="before")
    @classmethod
    def normalize_incentives(cls, v: Any) -> bool:
        return bool(v)


class FrequencySelection(BaseModel):
    """
    Chosen cadence per category. None (or blank) leaves the category out entirely;
    "none" keeps it on the agreement at zero cost.
    """
    model_config = ConfigDict(populate_by_name=True)

    chute_cleaning: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("chute_cleaning", "chuteCleaningFrequency")
    )
    equipment_maintenance: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("equipment_maintenance", "equipmentMaintenanceFrequency")
    )
    hopper_door_inspection: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("hopper_door_inspection", "selfClosingHopperDoorInspectionFrequency"),
    )
    waste_room_pressure_clean: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("waste_room_pressure_clean", "wasteRoomCleaningFrequency")
    )
    bin_cleaning: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("bin_cleaning", "binCleaningFrequency")
    )
    odour_control: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("odour_control", "odourControlFrequency")
    )

    @field_validator("*", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return _text_or_none(v)

    def for_type(self, service_type: ServiceType | str) -> Optional[str]:
        return getattr(self, getattr(service_type, "value", service_type), None)


class AgreementRequest(BaseModel):
    """
    Render request as posted by the agreement form. Wire keys are camelCase;
    every field is optional and missing values render as empty strings.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    company_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("company_name", "companyName"))
    abn: Optional[str] = None
    business_street_address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("business_street_address", "businessStreetAddress")
    )
    business_city: Optional[str] = Field(default=None, validation_alias=AliasChoices("business_city", "businessCity"))
    business_postcode: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("business_postcode", "businessPostcode")
    )
    business_state: Optional[str] = Field(default=None, validation_alias=AliasChoices("business_state", "businessState"))
    account_email: Optional[str] = Field(default=None, validation_alias=AliasChoices("account_email", "accountEmail"))
    account_phone: Optional[str] = Field(default=None, validation_alias=AliasChoices("account_phone", "accountPhone"))
    account_mobile: Optional[str] = Field(default=None, validation_alias=AliasChoices("account_mobile", "accountMobile"))
    sign_full_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("sign_full_name", "signFullName"))
    sign_title: Optional[str] = Field(default=None, validation_alias=AliasChoices("sign_title", "signTitle"))
    signature_data_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("signature_data_url", "trimmedDataURL")
    )
    salesperson: Optional[str] = None

    service_agreement: ServiceAgreement = Field(
        default_factory=ServiceAgreement,
        validation_alias=AliasChoices("service_agreement", "serviceAgreement"),
    )

    chute_cleaning_frequency: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("chute_cleaning_frequency", "chuteCleaningFrequency")
    )
    equipment_maintenance_frequency: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("equipment_maintenance_frequency", "equipmentMaintenanceFrequency"),
    )
    hopper_door_inspection_frequency: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "hopper_door_inspection_frequency", "selfClosingHopperDoorInspectionFrequency"
        ),
    )
    waste_room_cleaning_frequency: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("waste_room_cleaning_frequency", "wasteRoomCleaningFrequency")
    )
    bin_cleaning_frequency: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("bin_cleaning_frequency", "binCleaningFrequency")
    )
    odour_control_frequency: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("odour_control_frequency", "odourControlFrequency")
    )
    odour_control_units: Dict[str, PriceLike] = Field(
        default_factory=dict, validation_alias=AliasChoices("odour_control_units", "odourControlUnits")
    )

    @field_validator(
        "company_name",
        "abn",
        "business_street_address",
        "business_city",
        "business_postcode",
        "business_state",
        "account_email",
        "account_phone",
        "account_mobile",
        "sign_full_name",
        "sign_title",
        "signature_data_url",
        "salesperson",
        "chute_cleaning_frequency",
        "equipment_maintenance_frequency",
        "hopper_door_inspection_frequency",
        "waste_room_cleaning_frequency",
        "bin_cleaning_frequency",
        "odour_control_frequency",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return _text_or_none(v)

    @field_validator("service_agreement", mode="before")
    @classmethod
    def normalize_agreement(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, ServiceAgreement)) else {}

    @field_validator("odour_control_units", mode="before")
    @classmethod
    def normalize_units(cls, v: Any) -> dict:
        if not isinstance(v, dict):
            return {}
        return {
            str(k): (val if isinstance(val, (int, float, str)) and not isinstance(val, bool) else None)
            for k, val in v.items()
        }

    @property
    def sites(self) -> List[Site]:
        return self.service_agreement.sites

    @property
    def incentives_enabled(self) -> bool:
        return self.service_agreement.incentives

    @property
    def salesperson_name(self) -> str:
        return self.salesperson or self.service_agreement.salesperson or ""

    @property
    def frequencies(self) -> FrequencySelection:
        return FrequencySelection(
            chute_cleaning=self.chute_cleaning_frequency,
            equipment_maintenance=self.equipment_maintenance_frequency,
            hopper_door_inspection=self.hopper_door_inspection_frequency,
            waste_room_pressure_clean=self.waste_room_cleaning_frequency,
            bin_cleaning=self.bin_cleaning_frequency,
            odour_control=self.odour_control_frequency,
        )


class CategoryTotal(BaseModel):
    service_type: ServiceType
    label: str
    frequency: Optional[str] = None
    multiplier: int = 0
    service_count: int = 0
    annual_cost: float = 0.0


class PricingBreakdown(BaseModel):
    """Annual pricing for one agreement. grand_total is the discounted annual figure."""
    categories: List[CategoryTotal] = Field(default_factory=list)
    subtotal: float = 0.0
    selected_count: int = 0
    discount_pct: float = 0.0
    discount_amount: float = 0.0
    incentives_enabled: bool = False
    grand_total: float = Field(ge=0.0, default=0.0)
    contract_total: float = Field(ge=0.0, default=0.0)
    incentive_tier: str = ""
    incentive_perks: List[str] = Field(default_factory=list)


class ExportResponse(BaseModel):
    bucket: str
    key: str
    region: str
    url: str
    expires_in: int
