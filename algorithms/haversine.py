"""
Haversine Algorithm - Calculate distance between two geographical points
Used to keep donor outreach within reach of the requesting hospital
"""

import math

# Radius of earth in kilometers
EARTH_RADIUS_KM = 6371


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate straight-line distance between two points.
    Note: This is "as the crow flies" distance, not road distance.

    Args:
        lat1, lon1: Latitude and longitude of point 1 (hospital)
        lat2, lon2: Latitude and longitude of point 2 (donor)

    Returns:
        Distance in kilometers
    """
    # Convert decimal degrees to radians
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(math.sqrt(a))

    return c * EARTH_RADIUS_KM


def donor_hospital_distance(donor, blood_request):
    """
    Distance in km between a donor and the hospital of a blood request.

    Returns None when either side has no coordinates, so callers can tell
    "unknown" apart from "far away".
    """
    coordinates = (
        donor.latitude,
        donor.longitude,
        blood_request.hospital_latitude,
        blood_request.hospital_longitude,
    )
    if any(value is None for value in coordinates):
        return None

    return haversine_distance(
        blood_request.hospital_latitude,
        blood_request.hospital_longitude,
        donor.latitude,
        donor.longitude,
    )
