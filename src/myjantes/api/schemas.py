"""Pydantic v2 schemas for API request/response models.

Monetary amounts, quantities and rates travel as strings so no precision is
lost on the way in or out.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from myjantes.domain.value_objects import (
    InvoiceStatus,
    PaymentMethod,
    QuoteStatus,
    ReservationStatus,
)

# Non-negative decimals; rates are further capped at 100.
AMOUNT_PATTERN = r"^\d+(\.\d+)?$"
RATE_PATTERN = r"^(100(\.0+)?|\d{1,2}(\.\d+)?)$"


class HealthResponse(BaseModel):
    status: str
    version: str = "0.1.0"


# Catalog Schemas
class ServiceCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    base_price: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    category: str | None = Field(default=None, max_length=100)


class ServiceUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    base_price: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    category: str | None = Field(default=None, max_length=100)


class ServiceResponse(BaseModel):
    id: UUID
    name: str
    description: str
    base_price: str | None
    category: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


# Media Schemas
class MediaFileIn(BaseModel):
    """A file already uploaded to object storage."""

    key: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, description="MIME type, e.g. image/jpeg")
    name: str | None = None


class MediaResponse(BaseModel):
    id: UUID
    file_path: str
    file_type: str
    file_name: str
    created_at: datetime


# Line Item Schemas
class LineItemCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., min_length=1)
    unit_price_excluding_tax: str = Field(..., pattern=AMOUNT_PATTERN)
    tax_rate: str = Field(default="20", pattern=RATE_PATTERN)
    quantity: str = Field(default="1", pattern=AMOUNT_PATTERN)


class LineItemUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str | None = Field(default=None, min_length=1)
    unit_price_excluding_tax: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    tax_rate: str | None = Field(default=None, pattern=RATE_PATTERN)
    quantity: str | None = Field(default=None, pattern=AMOUNT_PATTERN)


class LineItemResponse(BaseModel):
    id: UUID
    parent_id: UUID
    description: str
    quantity: str
    unit_price_excluding_tax: str
    tax_rate: str
    total_excluding_tax: str
    tax_amount: str
    total_including_tax: str
    created_at: datetime
    updated_at: datetime


class TotalsResponse(BaseModel):
    document_id: UUID
    price_excluding_tax: str
    tax_amount: str
    total_including_tax: str
    tax_rate: str


class LineItemMutationResponse(BaseModel):
    item: LineItemResponse
    totals: TotalsResponse


# Quote Schemas
class ServiceLineIn(BaseModel):
    description: str | None = None
    unit_price_excluding_tax: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    quantity: str = Field(default="1", pattern=AMOUNT_PATTERN)
    service_id: UUID | None = None


class QuoteCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    client_id: str = Field(..., min_length=1)
    service_id: UUID | None = None
    payment_method: PaymentMethod = PaymentMethod.WIRE_TRANSFER
    request_details: dict[str, Any] | None = None
    wheel_count: int | None = Field(default=None, ge=1, le=4)
    diameter: str | None = None
    product_details: str | None = None
    notes: str | None = None
    valid_until: datetime | None = None
    price_excluding_tax: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    tax_rate: str | None = Field(default=None, pattern=RATE_PATTERN)
    tax_amount: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    quote_amount: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    media_files: list[MediaFileIn] = Field(default_factory=list)
    services: list[ServiceLineIn] = Field(default_factory=list)
    services_tax_rate: str | None = Field(default=None, pattern=RATE_PATTERN)


class QuoteUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    service_id: UUID | None = None
    request_details: dict[str, Any] | None = None
    wheel_count: int | None = Field(default=None, ge=1, le=4)
    diameter: str | None = None
    product_details: str | None = None
    notes: str | None = None
    valid_until: datetime | None = None


class QuoteStatusUpdate(BaseModel):
    status: QuoteStatus


class QuoteResponse(BaseModel):
    id: UUID
    client_id: str
    service_id: UUID | None
    status: str
    payment_method: str
    request_details: dict[str, Any] | None
    wheel_count: int | None
    diameter: str | None
    product_details: str | None
    notes: str | None
    valid_until: datetime | None
    price_excluding_tax: str
    tax_amount: str
    quote_amount: str
    tax_rate: str
    created_at: datetime
    updated_at: datetime


class QuoteCreatedResponse(BaseModel):
    quote: QuoteResponse
    line_items: list[LineItemResponse]
    media: list[MediaResponse]
    incomplete_steps: list[str]


# Invoice Schemas
class InvoiceCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    client_id: str = Field(..., min_length=1)
    quote_id: UUID | None = None
    payment_method: PaymentMethod = PaymentMethod.WIRE_TRANSFER
    wheel_count: int | None = Field(default=None, ge=1, le=4)
    diameter: str | None = None
    product_details: str | None = None
    notes: str | None = None
    due_date: datetime | None = None
    price_excluding_tax: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    tax_rate: str | None = Field(default=None, pattern=RATE_PATTERN)
    tax_amount: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    amount: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    media_files: list[MediaFileIn] = Field(default_factory=list)
    line_items: list[LineItemCreate] = Field(default_factory=list)


class InvoiceUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    wheel_count: int | None = Field(default=None, ge=1, le=4)
    diameter: str | None = None
    product_details: str | None = None
    notes: str | None = None
    due_date: datetime | None = None


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class InvoiceResponse(BaseModel):
    id: UUID
    invoice_number: str
    quote_id: UUID | None
    client_id: str
    status: str
    payment_method: str
    wheel_count: int | None
    diameter: str | None
    product_details: str | None
    notes: str | None
    due_date: datetime | None
    paid_at: datetime | None
    price_excluding_tax: str
    tax_amount: str
    amount: str
    tax_rate: str
    created_at: datetime
    updated_at: datetime


class InvoiceCreatedResponse(BaseModel):
    invoice: InvoiceResponse
    line_items: list[LineItemResponse]
    media: list[MediaResponse]
    incomplete_steps: list[str]


# Reservation Schemas
class ReservationCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    client_id: str = Field(..., min_length=1)
    scheduled_date: datetime
    service_id: UUID | None = None
    quote_id: UUID | None = None
    wheel_count: int | None = Field(default=None, ge=1, le=4)
    diameter: str | None = None
    price_excluding_tax: str | None = Field(default=None, pattern=AMOUNT_PATTERN)
    tax_rate: str | None = Field(default=None, pattern=RATE_PATTERN)
    product_details: str | None = None
    notes: str | None = None
    status: ReservationStatus = ReservationStatus.PENDING


class ReservationStatusUpdate(BaseModel):
    status: ReservationStatus


class ReservationResponse(BaseModel):
    id: UUID
    client_id: str
    quote_id: UUID | None
    service_id: UUID | None
    scheduled_date: datetime
    status: str
    wheel_count: int | None
    diameter: str | None
    price_excluding_tax: str | None
    tax_rate: str | None
    tax_amount: str | None
    product_details: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


# Notification Schemas
class NotificationResponse(BaseModel):
    id: UUID
    user_id: str
    type: str
    title: str
    message: str
    related_id: UUID | None
    is_read: bool
    created_at: datetime


class NotificationRetryResponse(BaseModel):
    delivered: int
    pending: int


# Counter Schemas
class CounterResponse(BaseModel):
    payment_type: str
    current_number: int
    updated_at: datetime


# Workshop Settings Schemas
class ShopSettingsUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    default_wheel_count: int | None = Field(default=None, ge=1, le=4)
    default_diameter: str | None = Field(default=None, min_length=1, max_length=50)
    default_tax_rate: str | None = Field(default=None, pattern=RATE_PATTERN)
    wheel_count_options: list[int] | None = Field(default=None, min_length=1)
    diameter_options: list[str] | None = Field(default=None, min_length=1)
    company_name: str | None = Field(default=None, min_length=1, max_length=255)
    company_address: str | None = None
    company_phone: str | None = Field(default=None, max_length=50)
    company_email: str | None = Field(default=None, max_length=255)
    company_siret: str | None = Field(default=None, max_length=17)
    company_tva_number: str | None = Field(default=None, max_length=20)


class ShopSettingsResponse(BaseModel):
    id: UUID
    default_wheel_count: int
    default_diameter: str
    default_tax_rate: str
    wheel_count_options: list[int]
    diameter_options: list[str]
    company_name: str
    company_address: str | None
    company_phone: str | None
    company_email: str | None
    company_siret: str | None
    company_tva_number: str | None
    created_at: datetime
    updated_at: datetime
