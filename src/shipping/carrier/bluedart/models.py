"""BlueDart wire models (PascalCase JSON over the REST-wrapped WCF services)."""

from pydantic import BaseModel, ConfigDict, Field


class _BlueDartModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _BlueDartResult(_BlueDartModel):
    error_message: list[str] | str | None = Field(default=None, alias="ErrorMessage")
    is_error: bool = Field(default=False, alias="IsError")

    @property
    def first_error(self) -> str | None:
        if isinstance(self.error_message, list):
            return next((message for message in self.error_message if message), None)
        return self.error_message or None


class Profile(_BlueDartModel):
    login_id: str = Field(alias="LoginID")
    licence_key: str = Field(alias="LicenceKey")
    api_type: str = Field(default="S", alias="Api_type")


# ---------------------------------------------------------------------------
# Waybill generation
# ---------------------------------------------------------------------------
class Consignee(_BlueDartModel):
    name: str = Field(alias="ConsigneeName")
    address1: str = Field(alias="ConsigneeAddress1")
    pincode: str = Field(alias="ConsigneePincode")
    mobile: str = Field(alias="ConsigneeMobile")
    email: str | None = Field(default=None, alias="ConsigneeEmailID")
    attention: str | None = Field(default=None, alias="ConsigneeAttention")


class Shipper(_BlueDartModel):
    customer_name: str = Field(alias="CustomerName")
    customer_address1: str = Field(alias="CustomerAddress1")
    customer_pincode: str = Field(alias="CustomerPincode")
    customer_mobile: str = Field(alias="CustomerMobile")
    customer_code: str = Field(alias="CustomerCode")
    origin_area: str = Field(alias="OriginArea")
    is_to_pay_customer: bool = Field(default=False, alias="IsToPayCustomer")


class Commodity(_BlueDartModel):
    detail1: str = Field(default="", alias="CommodityDetail1")


class Dimension(_BlueDartModel):
    length: float = Field(alias="Length")
    breadth: float = Field(alias="Breadth")
    height: float = Field(alias="Height")
    count: int = Field(default=1, alias="Count")


class Dimensions(_BlueDartModel):
    dimension: list[Dimension] = Field(default_factory=list, alias="Dimension")


class Services(_BlueDartModel):
    actual_weight: float = Field(alias="ActualWeight")
    collectable_amount: float = Field(default=0, alias="CollectableAmount")
    commodity: Commodity = Field(default_factory=Commodity, alias="Commodity")
    credit_reference_no: str = Field(alias="CreditReferenceNo")
    declared_value: float = Field(default=0, alias="DeclaredValue")
    dimensions: Dimensions | None = Field(default=None, alias="Dimensions")
    invoice_no: str | None = Field(default=None, alias="InvoiceNo")
    item_count: int = Field(default=1, alias="ItemCount")
    pickup_date: str = Field(alias="PickupDate")
    pickup_time: str = Field(default="1000", alias="PickupTime")
    piece_count: int = Field(default=1, alias="PieceCount")
    product_code: str = Field(default="A", alias="ProductCode")
    product_type: int = Field(default=2, alias="ProductType")
    sub_product_code: str = Field(default="P", alias="SubProductCode")


class WaybillRequestData(_BlueDartModel):
    consignee: Consignee = Field(alias="Consignee")
    services: Services = Field(alias="Services")
    shipper: Shipper = Field(alias="Shipper")


class WaybillResult(_BlueDartResult):
    awb_no: str | None = Field(default=None, alias="AWBNo")
    destination_area: str | None = Field(default=None, alias="DestinationArea")
    destination_location: str | None = Field(default=None, alias="DestinationLocation")
    status: int | str | None = Field(default=None, alias="Status")


class WaybillResponse(_BlueDartModel):
    result: WaybillResult | None = Field(default=None, alias="GenerateWaybillResult")


# ---------------------------------------------------------------------------
# Serviceability
# ---------------------------------------------------------------------------
class PincodeResult(_BlueDartResult):
    area_code: str | None = Field(default=None, alias="AreaCode")
    city_name: str | None = Field(default=None, alias="CityName")
    state_name: str | None = Field(default=None, alias="StateName")
    apex_inbound: str | None = Field(default=None, alias="ApexInbound")
    apex_outbound: str | None = Field(default=None, alias="ApexOutbound")
    etail_cod_air_inbound: str | None = Field(default=None, alias="eTailCODAirInbound")
    etail_cod_ground_inbound: str | None = Field(default=None, alias="eTailCODGroundInbound")
    available_service_codes: list[str] | None = Field(default=None, alias="AvailableServiceCodes")


class PincodeResponse(_BlueDartModel):
    result: PincodeResult | None = Field(default=None, alias="GetServicesforPincodeResult")


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------
class TrackingDetail(_BlueDartModel):
    awb_number: str | None = Field(default=None, alias="AWBNumber")
    status: str | None = Field(default=None, alias="Status")
    status_date: str | None = Field(default=None, alias="StatusDate")
    status_time: str | None = Field(default=None, alias="StatusTime")
    status_type: str | None = Field(default=None, alias="StatusType")
    status_location: str | None = Field(default=None, alias="StatusLocation")
    instructions: str | None = Field(default=None, alias="Instructions")
    received_by: str | None = Field(default=None, alias="ReceivedBy")
    remarks: str | None = Field(default=None, alias="Remarks")
    expected_delivery_date: str | None = Field(default=None, alias="ExpectedDeliveryDate")


class TrackingResult(_BlueDartResult):
    details: list[TrackingDetail] = Field(default_factory=list, alias="ShipmentTrackingDetails")


class TrackingResponse(_BlueDartModel):
    result: TrackingResult | None = Field(default=None, alias="GetShipmentTrackingResult")


# ---------------------------------------------------------------------------
# Pickup, cancellation, label
# ---------------------------------------------------------------------------
class PickupRequestData(_BlueDartModel):
    area_code: str = Field(alias="AreaCode")
    customer_code: str = Field(alias="CustomerCode")
    customer_name: str = Field(alias="CustomerName")
    customer_address1: str = Field(alias="CustomerAddress1")
    customer_pincode: str = Field(alias="CustomerPincode")
    customer_mobile: str = Field(alias="CustomerMobile")
    pickup_date: str = Field(alias="PickupDate")
    pickup_time: str | None = Field(default=None, alias="PickupTime")
    product_type: int = Field(default=2, alias="ProductType")
    number_of_pieces: int = Field(alias="NumberOfPieces")
    actual_weight: float = Field(alias="ActualWeight")


class PickupResult(_BlueDartResult):
    registration_number: int | str | None = Field(default=None, alias="PickupRegistrationNumber")
    token_number: str | None = Field(default=None, alias="TokenNumber")


class PickupResponse(_BlueDartModel):
    result: PickupResult | None = Field(default=None, alias="RegisterPickupResult")


class CancelResult(_BlueDartResult):
    status: str | int | None = Field(default=None, alias="Status")


class CancelResponse(_BlueDartModel):
    result: CancelResult | None = Field(default=None, alias="CancelWaybillResult")


class PrintResult(_BlueDartResult):
    content: str | None = Field(default=None, alias="AWBPrintContent")


class PrintResponse(_BlueDartModel):
    result: PrintResult | None = Field(default=None, alias="PrintAWBResult")


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------
class WebhookPayload(_BlueDartModel):
    awb_no: str | None = Field(default=None, alias="AWBNo")
    status: str | None = Field(default=None, alias="Status")
    status_code: str | None = Field(default=None, alias="StatusCode")
    status_date: str | None = Field(default=None, alias="StatusDate")
    status_time: str | None = Field(default=None, alias="StatusTime")
    status_location: str | None = Field(default=None, alias="StatusLocation")
    reference_no: str | None = Field(default=None, alias="ReferenceNo")
    received_by: str | None = Field(default=None, alias="ReceivedBy")
    remarks: str | None = Field(default=None, alias="Remarks")
