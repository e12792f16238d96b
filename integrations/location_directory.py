"""
Province / district directory lookups.

Proxies the public Turkish location API that fills the province and
district fields of the sample request form.
"""

from typing import Any, Optional
import requests
import structlog

from config import settings
from exceptions import LocationLookupError
from models.location import Location

logger = structlog.get_logger(__name__)


LOCATION_FIELDS = "id,name"


def get_location_api_url() -> Optional[str]:
    """Base URL of the location directory, without trailing slash."""
    url = settings.location_api_url
    if not url:
        logger.warning("location_api_not_configured")
        return None
    return url.rstrip("/")


def fetch_locations(path: str, params: dict[str, Any]) -> list[Location]:
    """
    GET a location list from the directory.

    Args:
        path: "provinces" or "districts"
        params: Query filters; fields and sort are added here

    Returns:
        Locations sorted by name

    Raises:
        LocationLookupError: Not configured, unreachable or bad response
    """
    base_url = get_location_api_url()
    if not base_url:
        raise LocationLookupError("LOCATION_API_URL is not configured")

    url = f"{base_url}/{path}"
    query = {**params, "fields": LOCATION_FIELDS, "sort": "name"}

    try:
        logger.info("fetching_locations", path=path, params=params)

        response = requests.get(url, params=query, timeout=settings.location_api_timeout)
        response.raise_for_status()

        payload = response.json()

    except requests.exceptions.RequestException as e:
        logger.error("location_request_failed", path=path, error=str(e))
        raise LocationLookupError(f"Location lookup failed: {e}")
    except ValueError as e:
        logger.error("location_response_not_json", path=path, error=str(e))
        raise LocationLookupError("Location directory returned an invalid response")

    rows = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(rows, list):
        logger.error("location_response_unexpected", path=path)
        raise LocationLookupError("Location directory returned an invalid response")

    return [Location(id=row["id"], name=row["name"]) for row in rows]


def list_provinces(name: str = "") -> list[Location]:
    """Provinces whose name matches; all provinces for an empty name."""
    return fetch_locations("provinces", {"name": name})


def list_districts(province: Optional[str]) -> list[Location]:
    """Districts of a province; no lookup without a province."""
    if not province:
        return []
    return fetch_locations("districts", {"province": province})
