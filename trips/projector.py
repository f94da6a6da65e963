"""Projection of raw search hits into flat, fixed-shape records.

All defaulting for missing or partial upstream documents happens here, so
callers never have to guard nested lookups themselves.
"""

from __future__ import annotations

import logging
from typing import Any

from trips.models import (
    DriverInfo,
    PlaceInfo,
    RideLocationRecord,
    RiderInfo,
    TripRecord,
    VehicleInfo,
)

logger = logging.getLogger(__name__)


def hit_source(hit: Any) -> dict[str, Any]:
    """Return the document body for a hit, or the hit itself if it is a bare source."""
    if not isinstance(hit, dict):
        return {}
    source = hit.get("_source")
    if isinstance(source, dict):
        return source
    if "_id" in hit or "_index" in hit:
        return {}
    return hit


def _obj(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, dict | list):
        return None
    return str(value)


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return None


def project_trip(hit: Any) -> TripRecord:
    """Map a trip hit into a TripRecord."""
    trip = hit_source(hit)
    driver = _obj(trip.get("driver"))
    vehicle = _obj(driver.get("vehicle"))
    rider = _obj(trip.get("rider"))
    origin = _obj(trip.get("from"))
    destination = _obj(trip.get("to"))

    return TripRecord(
        tripId=_text(trip.get("tripId")),
        rideId=_text(trip.get("rideId")),
        bookingId=_text(trip.get("bookingId")),
        driver=DriverInfo(
            id=_text(driver.get("id")),
            name=_text(driver.get("name")),
            phone=_first(driver.get("phone"), trip.get("driverPhone")),
            rating=driver.get("rating"),
            vehicle=VehicleInfo(
                number=vehicle.get("number"),
                type=driver.get("vehicleType"),
            ),
            currentLocation=driver.get("currentLocation"),
        ),
        rider=RiderInfo(
            id=_text(_first(rider.get("id"), trip.get("riderId"))),
            name=_text(rider.get("name")),
            phone=rider.get("phone"),
            type=rider.get("type"),
            parentRider=rider.get("parentRider"),
        ),
        fromLocation=_project_place(origin),
        to=_project_place(destination),
        pickUpPoint=trip.get("pickUpPoint"),
        dropOffPoint=trip.get("dropOffPoint"),
        tripStatus=_text(trip.get("tripStatus")),
        taskStatus=_text(trip.get("taskStatus")),
        bookingStatus=_text(trip.get("bookingStatus")),
        rideType=_text(trip.get("rideType")),
        type=_text(trip.get("type")),
        subType=_text(trip.get("subType")),
        price=trip.get("price"),
        calculatedPrice=trip.get("calculatedPrice"),
        priceBreakUp=trip.get("priceBreakUp"),
        paymentStatus=_text(trip.get("paymentStatus")),
        paymentType=_text(trip.get("paymentType")),
        createdAt=trip.get("createdAt"),
        startTime=trip.get("startTime"),
        endTime=trip.get("endTime"),
        scheduledAt=trip.get("scheduledAt"),
        scheduledTime=trip.get("scheduledTime"),
        pickUpTime=trip.get("pickUpTime"),
        driverArrived=trip.get("driverArrived"),
        driverArrivedTime=trip.get("driverArrivedTime"),
        driverReached=trip.get("driverReached"),
        driverReachedTime=trip.get("driverReachedTime"),
        bookedSeats=_first(trip.get("bookedSeats"), trip.get("seatsBooked")),
        passengerCount=trip.get("passengerCount"),
        distance=trip.get("distance"),
        calculatedDistanceInKm=trip.get("calculatedDistanceInKm"),
        otp=trip.get("otp"),
        # Upstream writes the flag as "cancled"; newer documents may carry
        # the correct spelling, which is only consulted when the old one is absent.
        cancelled=trip["cancled"] if "cancled" in trip else trip.get("cancelled"),
        cancelReason=trip.get("cancelReason"),
        canceledBy=trip.get("canceledBy"),
        canceledTime=trip.get("canceledTime"),
        lastContacted=trip.get("lastContacted"),
        lastContactedBy=trip.get("lastContactedBy"),
        lastContactedByName=trip.get("lastContactedByName"),
        assignedAdmin=trip.get("assignedAdmin"),
        completedByAdmin=trip.get("completedByAdmin"),
        canceledByAdmin=trip.get("canceledByAdmin"),
        isRecurringTrip=trip.get("isRecurringTrip"),
        isQrRide=trip.get("isQrRide"),
        bookedForSomeoneElse=trip.get("bookedForSomeoneElse"),
        isDynamicPricingApplied=trip.get("isDynamicPricingApplied"),
        locationDetails=trip.get("locationDetails"),
        currentLocation=trip.get("currentLocation"),
    )


def _project_place(place: dict[str, Any]) -> PlaceInfo:
    return PlaceInfo(
        name=_text(place.get("name")),
        coordinate=_first(place.get("coordinate"), place.get("coordinates")),
        shortName=_text(place.get("shortName")),
    )


def project_location(hit: Any) -> RideLocationRecord:
    """Map a ride-location-history hit into a RideLocationRecord."""
    source = hit_source(hit)
    hit_id = hit.get("_id") if isinstance(hit, dict) else None
    current_location = source.get("currentLocation")
    driver = source.get("driver")
    return RideLocationRecord(
        id=_text(hit_id),
        rideId=_text(source.get("rideId")),
        currentLocation=current_location if isinstance(current_location, dict) else None,
        createdAt=source.get("createdAt"),
        driver=driver if isinstance(driver, dict) else None,
        online=source.get("online"),
        bookedSeats=source.get("bookedSeats"),
        outForDelivery=source.get("outForDelivery"),
        checkedIn=source.get("checkedIn"),
        autoRouting=source.get("autoRouting"),
        assignedRouteId=source.get("assignedRouteId"),
        redirectRouteStarted=source.get("redirectRouteStarted"),
    )
