"""
Google Maps Platform Service
Route computation (Routes API), geocoding, and directions links
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from fastapi import HTTPException

from ..config import GOOGLE_MAPS_API_KEY
from ..shared.distance import parse_google_duration

logger = logging.getLogger(__name__)

ROUTES_API_URL = "https://routes.googleapis.com/directions/v2:computeRoutes"
GEOCODE_API_URL = "https://maps.googleapis.com/maps/api/geocode/json"
ROUTES_FIELD_MASK = (
    "routes.duration,routes.distanceMeters,routes.polyline,"
    "routes.legs,routes.optimizedIntermediateWaypointIndex"
)

HIGH_QUALITY_LOCATION_TYPES = {"ROOFTOP", "RANGE_INTERPOLATED"}


@dataclass
class RouteComputation:
    distance_meters: int
    duration_seconds: int
    legs: List[Dict[str, Any]] = field(default_factory=list)
    optimized_order: List[int] = field(default_factory=list)
    polyline: Optional[str] = None

    def leg_start(self, index: int) -> tuple:
        """(latitude, longitude) strings where leg ``index`` starts"""
        return self._leg_point(index, "startLocation")

    def leg_end(self, index: int) -> tuple:
        return self._leg_point(index, "endLocation")

    def _leg_point(self, index: int, key: str) -> tuple:
        if index >= len(self.legs):
            return None, None
        lat_lng = (self.legs[index].get(key) or {}).get("latLng") or {}
        lat = lat_lng.get("latitude")
        lng = lat_lng.get("longitude")
        return (
            str(lat) if lat is not None else None,
            str(lng) if lng is not None else None,
        )


def build_route_request(addresses: List[str], optimize: bool = False) -> Dict[str, Any]:
    """Routes API body: first address is the origin, last is the destination"""
    body = {
        "origin": {"address": addresses[0]},
        "destination": {"address": addresses[-1]},
        "travelMode": "DRIVE",
        "routingPreference": "TRAFFIC_AWARE",
        "computeAlternativeRoutes": False,
        "routeModifiers": {"avoidTolls": False, "avoidHighways": False, "avoidFerries": False},
    }
    intermediates = addresses[1:-1]
    if intermediates:
        body["intermediates"] = [{"address": a} for a in intermediates]
        if optimize:
            body["optimizeWaypointOrder"] = True
    return body


def parse_route_response(data: Dict[str, Any]) -> RouteComputation:
    routes = data.get("routes") or []
    if not routes:
        raise HTTPException(status_code=404, detail="No route found for the given waypoints")

    route = routes[0]
    return RouteComputation(
        distance_meters=int(route.get("distanceMeters") or 0),
        duration_seconds=parse_google_duration(route.get("duration")),
        legs=route.get("legs") or [],
        optimized_order=list(route.get("optimizedIntermediateWaypointIndex") or []),
        polyline=(route.get("polyline") or {}).get("encodedPolyline"),
    )


def apply_optimized_order(items: list, order: List[int]) -> list:
    """
    Reorder the intermediates of ``items`` by Google's optimized index list.
    Origin and destination stay in place; an order that doesn't cover every
    intermediate exactly once is ignored.
    """
    if len(items) < 3 or not order:
        return list(items)

    intermediates = items[1:-1]
    if sorted(order) != list(range(len(intermediates))):
        logger.warning(f"⚠️ Ignoring invalid optimized order {order} for {len(intermediates)} stops")
        return list(items)

    return [items[0]] + [intermediates[i] for i in order] + [items[-1]]


async def compute_route(addresses: List[str], optimize: bool = False) -> RouteComputation:
    """Compute a driving route through ``addresses`` in order (or optimized)"""
    if not GOOGLE_MAPS_API_KEY:
        raise HTTPException(status_code=500, detail="Google Maps API key not configured")
    if len(addresses) < 2:
        raise HTTPException(status_code=400, detail="At least 2 waypoints required")

    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(
                ROUTES_API_URL,
                headers={
                    "Content-Type": "application/json",
                    "X-Goog-Api-Key": GOOGLE_MAPS_API_KEY,
                    "X-Goog-FieldMask": ROUTES_FIELD_MASK,
                },
                json=build_route_request(addresses, optimize),
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ Routes API request failed: {str(e)}")
        raise HTTPException(status_code=502, detail="Failed to calculate route") from e

    if response.status_code != 200:
        logger.error(f"❌ Routes API error {response.status_code}: {response.text}")
        raise HTTPException(status_code=502, detail=f"Failed to calculate route: {response.text}")

    result = parse_route_response(response.json())
    logger.info(
        f"🗺️ Route computed: {len(addresses)} stops, {result.distance_meters}m, {result.duration_seconds}s"
    )
    return result


def parse_geocode_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a Geocoding API response into an address validation result"""
    status = data.get("status")
    results = data.get("results") or []

    if status == "OK" and results:
        top = results[0]
        location = (top.get("geometry") or {}).get("location") or {}
        suggestions = [r.get("formatted_address") for r in results[:3]]
        return {
            "isValid": True,
            "formattedAddress": top.get("formatted_address"),
            "latitude": location.get("lat"),
            "longitude": location.get("lng"),
            "highQuality": (top.get("geometry") or {}).get("location_type") in HIGH_QUALITY_LOCATION_TYPES,
            "suggestions": suggestions if len(suggestions) > 1 else None,
        }
    if status == "ZERO_RESULTS":
        return {"isValid": False, "error": "Address not found. Please check the address and try again."}
    return {"isValid": False, "error": f"Unable to validate address: {status}"}


async def validate_address(address: str) -> Dict[str, Any]:
    if not address or not address.strip():
        return {"isValid": False, "error": "Address cannot be empty"}
    if not GOOGLE_MAPS_API_KEY:
        logger.warning("⚠️ GOOGLE_MAPS_API_KEY not set, skipping address validation")
        return {"isValid": False, "error": "Geocoding not configured"}

    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            response = await client.get(
                GEOCODE_API_URL, params={"address": address.strip(), "key": GOOGLE_MAPS_API_KEY}
            )
        return parse_geocode_response(response.json())
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"❌ Error validating address: {str(e)}")
        return {"isValid": False, "error": "Failed to validate address. Please try again."}


def build_google_maps_url(addresses: List[str]) -> str:
    """Driving directions link through every address in order"""
    if len(addresses) < 2:
        raise ValueError("Route must have at least 2 waypoints")

    origin = quote(addresses[0], safe="")
    destination = quote(addresses[-1], safe="")
    url = (
        f"https://www.google.com/maps/dir/?api=1"
        f"&origin={origin}&destination={destination}&travelmode=driving"
    )
    intermediates = "|".join(quote(a, safe="") for a in addresses[1:-1])
    if intermediates:
        url += f"&waypoints={intermediates}"
    return url
