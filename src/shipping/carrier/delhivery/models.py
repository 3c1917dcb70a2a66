"""Delhivery wire models.

Field names follow Delhivery's JSON exactly (including its spellings) via
aliases; these types never leave the ``delhivery`` package.
"""

from pydantic import BaseModel, ConfigDict, Field


class _DelhiveryModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Serviceability
# ---------------------------------------------------------------------------
class PostalCode(_DelhiveryModel):
    pin: int | str | None = None
    city: str | None = None
    district: str | None = None
    state_code: str | None = None
    cod: str | None = None
    pre_paid: str | None = None
    pickup: str | None = None
    repl: str | None = None


class DeliveryCode(_DelhiveryModel):
    postal_code: PostalCode


class PincodeResponse(_DelhiveryModel):
    delivery_codes: list[DeliveryCode] = Field(default_factory=list)

    @property
    def first(self) -> PostalCode | None:
        return self.delivery_codes[0].postal_code if self.delivery_codes else None


# ---------------------------------------------------------------------------
# Shipment creation
# ---------------------------------------------------------------------------
class ShipmentPayload(_DelhiveryModel):
    name: str
    add: str
    pin: str
    city: str
    state: str
    country: str = "India"
    phone: str
    order: str
    payment_mode: str
    cod_amount: float = 0
    total_amount: float = 0
    order_date: str
    products_desc: str = ""
    quantity: int = 1
    waybill: str | None = None
    weight: float
    shipment_length: float | None = None
    shipment_width: float | None = None
    shipment_height: float | None = None
    return_pin: str | None = None
    return_city: str | None = None
    return_state: str | None = None
    return_add: str | None = None
    return_phone: str | None = None
    return_name: str | None = None
    return_country: str = "India"


class PickupLocation(_DelhiveryModel):
    name: str
    add: str | None = None
    city: str | None = None
    pin_code: str | None = None
    phone: str | None = None


class CreateShipmentPayload(_DelhiveryModel):
    shipments: list[ShipmentPayload]
    pickup_location: PickupLocation


class CreatedPackage(_DelhiveryModel):
    waybill: str | None = None
    refnum: str | None = None
    status: str | None = None
    remarks: list[str] | str | None = None


class CreateShipmentResponse(_DelhiveryModel):
    success: bool = False
    rmk: str | None = None
    packages: list[CreatedPackage] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------
class StatusBlock(_DelhiveryModel):
    status: str | None = Field(default=None, alias="Status")
    status_code: str | None = Field(default=None, alias="StatusCode")
    status_location: str | None = Field(default=None, alias="StatusLocation")
    status_date_time: str | None = Field(default=None, alias="StatusDateTime")
    status_type: str | None = Field(default=None, alias="StatusType")
    instructions: str | None = Field(default=None, alias="Instructions")
    received_by: str | None = Field(default=None, alias="RecievedBy")


class ScanDetail(_DelhiveryModel):
    scan: str | None = Field(default=None, alias="Scan")
    scan_date_time: str | None = Field(default=None, alias="ScanDateTime")
    scan_type: str | None = Field(default=None, alias="ScanType")
    scanned_location: str | None = Field(default=None, alias="ScannedLocation")
    instructions: str | None = Field(default=None, alias="Instructions")
    status_code: str | None = Field(default=None, alias="StatusCode")


class Scan(_DelhiveryModel):
    detail: ScanDetail = Field(alias="ScanDetail")


class TrackedShipment(_DelhiveryModel):
    awb: str | None = Field(default=None, alias="AWB")
    reference_no: str | None = Field(default=None, alias="ReferenceNo")
    status: StatusBlock | None = Field(default=None, alias="Status")
    scans: list[Scan] = Field(default_factory=list, alias="Scans")
    expected_delivery_date: str | None = Field(default=None, alias="ExpectedDeliveryDate")
    promised_delivery_date: str | None = Field(default=None, alias="PromisedDeliveryDate")


class ShipmentDataEntry(_DelhiveryModel):
    shipment: TrackedShipment = Field(alias="Shipment")


class TrackingResponse(_DelhiveryModel):
    shipment_data: list[ShipmentDataEntry] = Field(default_factory=list, alias="ShipmentData")


# ---------------------------------------------------------------------------
# Pickup and cancellation
# ---------------------------------------------------------------------------
class PickupPayload(_DelhiveryModel):
    pickup_time: str = "10:00 - 18:00"
    pickup_date: str
    pickup_location: str
    expected_package_count: int


class PickupResponse(_DelhiveryModel):
    success: bool | None = None
    pickup_id: int | str | None = None
    pickup_date: str | None = None
    pickup_time: str | None = None
    message: str | None = None
    error: str | None = None


class CancelResponse(_DelhiveryModel):
    status: bool = False
    waybill: str | None = None
    remark: str | None = None
    remarks: str | None = None


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------
class WebhookPayload(_DelhiveryModel):
    waybill: str | None = None
    status: str | None = None
    status_code: str | None = None
    status_type: str | None = None
    location: str | None = None
    timestamp: str | None = None
    reference_number: str | None = None
    delivered_to: str | None = None
    remarks: str | None = None
    received_by: str | None = None
    pod: str | None = None
