"""Pydantic models for trip analytics requests and projected records."""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from core.exceptions import InvalidRangeError, ValidationError

SortField = Literal[
    "createdAt",
    "startTime",
    "endTime",
    "scheduledTime",
    "price",
    "tripId",
    "tripStatus",
]

MAX_RESULT_SIZE = 10_000
_PHONE_PATTERN = re.compile(r"^[0-9+\-\s]{3,20}$")


class FilterOptions(BaseModel):
    """Trip filter options. Accepts camelCase or snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    trip_id: str | None = None
    ride_id: str | None = None
    driver_id: str | None = None
    rider_id: str | None = None
    rider_phone: str | None = None

    trip_status: str | None = None
    payment_status: str | None = None
    ride_type: str | None = None

    min_price: float | None = None
    max_price: float | None = None
    start_time: int | None = None
    end_time: int | None = None

    time_range: str | None = None
    custom_start: str | None = None
    custom_end: str | None = None

    size: int = Field(default=100, ge=0, le=MAX_RESULT_SIZE)
    sort_by: SortField = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"

    include_analytics: bool = True
    polyline_required: bool | None = None
    validate_polyline: bool = False

    @field_validator("rider_phone")
    @classmethod
    def _check_phone(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not _PHONE_PATTERN.match(value):
            msg = "Phone number must be 3-20 characters of digits, '+', '-' or spaces"
            raise ValueError(msg)
        return value

    @classmethod
    def parse(cls, raw: FilterOptions | dict[str, Any] | None) -> FilterOptions:
        """
        Build validated options from caller input.

        Keys whose value is None are dropped first, so absence and an explicit
        None both mean "no filter".

        Raises:
            ValidationError: For malformed values or inverted price bounds.
            InvalidRangeError: For inverted time bounds.
        """
        if isinstance(raw, FilterOptions):
            options = raw
        else:
            cleaned = {k: v for k, v in (raw or {}).items() if v is not None}
            try:
                options = cls.model_validate(cleaned)
            except PydanticValidationError as e:
                first = e.errors()[0] if e.errors() else {}
                location = ".".join(str(part) for part in first.get("loc", ()))
                msg = f"Invalid filter options: {location} {first.get('msg', '')}"
                raise ValidationError(
                    msg.strip(),
                    {"errors": e.errors(include_url=False)},
                ) from e
        options.check_ranges()
        return options

    def check_ranges(self) -> None:
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            msg = "minPrice must not exceed maxPrice"
            raise ValidationError(
                msg,
                {"minPrice": self.min_price, "maxPrice": self.max_price},
            )
        if (
            self.start_time is not None
            and self.end_time is not None
            and self.start_time > self.end_time
        ):
            msg = "startTime must not be after endTime"
            raise InvalidRangeError(
                msg,
                {"startTime": self.start_time, "endTime": self.end_time},
            )

    def canonical(self) -> dict[str, Any]:
        """Options as a plain dict without unset values, for cache keys."""
        return self.model_dump(exclude_none=True, by_alias=True)


class VehicleInfo(BaseModel):
    number: Any | None = None
    type: Any | None = None


class DriverInfo(BaseModel):
    id: str | None = None
    name: str | None = None
    phone: Any | None = None
    rating: Any | None = None
    vehicle: VehicleInfo = Field(default_factory=VehicleInfo)
    currentLocation: Any | None = None


class RiderInfo(BaseModel):
    id: str | None = None
    name: str | None = None
    phone: Any | None = None
    type: Any | None = None
    parentRider: Any | None = None


class PlaceInfo(BaseModel):
    name: str | None = None
    coordinate: Any | None = None
    shortName: str | None = None


class TripRecord(BaseModel):
    """Flattened trip projection with a fixed field set."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    tripId: str | None = None
    rideId: str | None = None
    bookingId: str | None = None

    driver: DriverInfo = Field(default_factory=DriverInfo)
    rider: RiderInfo = Field(default_factory=RiderInfo)

    fromLocation: PlaceInfo = Field(default_factory=PlaceInfo, alias="from")
    to: PlaceInfo = Field(default_factory=PlaceInfo)
    pickUpPoint: Any | None = None
    dropOffPoint: Any | None = None

    tripStatus: str | None = None
    taskStatus: str | None = None
    bookingStatus: str | None = None
    rideType: str | None = None
    type: str | None = None
    subType: str | None = None

    price: Any | None = None
    calculatedPrice: Any | None = None
    priceBreakUp: Any | None = None
    paymentStatus: str | None = None
    paymentType: str | None = None

    createdAt: Any | None = None
    startTime: Any | None = None
    endTime: Any | None = None
    scheduledAt: Any | None = None
    scheduledTime: Any | None = None
    pickUpTime: Any | None = None

    driverArrived: Any | None = None
    driverArrivedTime: Any | None = None
    driverReached: Any | None = None
    driverReachedTime: Any | None = None

    bookedSeats: Any | None = None
    passengerCount: Any | None = None
    distance: Any | None = None
    calculatedDistanceInKm: Any | None = None
    otp: Any | None = None

    cancelled: Any | None = None
    cancelReason: Any | None = None
    canceledBy: Any | None = None
    canceledTime: Any | None = None

    lastContacted: Any | None = None
    lastContactedBy: Any | None = None
    lastContactedByName: Any | None = None

    assignedAdmin: Any | None = None
    completedByAdmin: Any | None = None
    canceledByAdmin: Any | None = None

    isRecurringTrip: Any | None = None
    isQrRide: Any | None = None
    bookedForSomeoneElse: Any | None = None
    isDynamicPricingApplied: Any | None = None

    locationDetails: Any | None = None
    currentLocation: Any | None = None

    hasPolyline: bool = False
    polylineLength: int = 0
    estimatedPoints: int = 0

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class RideLocationRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    rideId: str | None = None
    currentLocation: dict[str, Any] | None = None
    createdAt: Any | None = None
    driver: dict[str, Any] | None = None
    online: Any | None = None
    bookedSeats: Any | None = None
    outForDelivery: Any | None = None
    checkedIn: Any | None = None
    autoRouting: Any | None = None
    assignedRouteId: Any | None = None
    redirectRouteStarted: Any | None = None


class PolylineValidation(BaseModel):
    """Per-trip polyline validation outcome."""

    tripId: str
    hasPolyline: bool = False
    polylineCount: int = 0
    polylineLength: int = 0
    estimatedPoints: int = 0
    isValid: bool = False
    issues: list[str] = Field(default_factory=list)
    error: str | None = None


class PolylineValidationSummary(BaseModel):
    totalChecked: int = 0
    withPolyline: int = 0
    valid: int = 0
    invalid: int = 0
    missing: int = 0
    errors: int = 0


class LocationHistoryOptions(BaseModel):
    """Options for ride-location history lookups."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    size: int = Field(default=500, ge=1, le=MAX_RESULT_SIZE)
    start_time: int | None = None
    end_time: int | None = None
    calculate_distance: bool = True

    @classmethod
    def parse(
        cls,
        raw: LocationHistoryOptions | dict[str, Any] | None,
    ) -> LocationHistoryOptions:
        if isinstance(raw, LocationHistoryOptions):
            options = raw
        else:
            cleaned = {k: v for k, v in (raw or {}).items() if v is not None}
            try:
                options = cls.model_validate(cleaned)
            except PydanticValidationError as e:
                msg = f"Invalid location history options: {e.errors()[0].get('msg', '')}"
                raise ValidationError(
                    msg,
                    {"errors": e.errors(include_url=False)},
                ) from e
        if (
            options.start_time is not None
            and options.end_time is not None
            and options.start_time > options.end_time
        ):
            msg = "startTime must not be after endTime"
            raise InvalidRangeError(
                msg,
                {"startTime": options.start_time, "endTime": options.end_time},
            )
        return options
