"""
Client for the Lantmäteriet geodata services.

Covers the authenticated REST APIs (property register, address register,
elevation), the open CC-BY WMTS tiles (topographic map, orthophoto), the
property boundary WMS and the STAC catalogs of downloadable imagery and
elevation rasters.
"""

import logging
import os
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from coordinates import (
    CRS_SWEREF99TM,
    BoundingBox,
    Sweref99Point,
    bbox_around,
    normalize_to_sweref99,
    sweref99_bbox_to_wgs84,
    validate_bbox,
)
from errors import NotFoundError, UpstreamApiError, ValidationError
from geometry import geometry_area, geometry_to_wgs84
from token_cache import TokenCache


logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = 2048
STAC_COLLECTIONS = ("ortofoto", "hojd")


class LantmaterietServices:
    """Client for the Lantmäteriet services"""

    API_BASE_URL = os.getenv("LANTMATERIET_API_URL", "https://api.lantmateriet.se")

    # Open data, CC-BY, no authentication
    OPEN_TOPOWEBB_WMTS = "https://api.lantmateriet.se/open/topowebb-ccby/v1/wmts/1.0.0"
    OPEN_ORTOFOTO_WMTS = "https://api.lantmateriet.se/open/ortofoto/v1/wmts/1.0.0"
    PROPERTY_WMS = "https://api.lantmateriet.se/open/fastighet/v1/wms"

    STAC_SEARCH_URLS = {
        "ortofoto": "https://api.lantmateriet.se/stac-bild/v1/search",
        "hojd": "https://api.lantmateriet.se/stac-hojd/v1/search",
    }

    def __init__(self, token_cache: TokenCache):
        self.token_cache = token_cache

    def is_auth_configured(self) -> bool:
        return self.token_cache.has_credentials()

    async def _authenticated_get(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """GET with a bearer token; non-success statuses raise UpstreamApiError."""
        token = await self.token_cache.get_token(client)
        response = await client.get(
            url,
            params=params,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
        )

        if response.status_code == 401:
            # Token was revoked or expired early; next call fetches a fresh one
            self.token_cache.invalidate()

        if not response.is_success:
            raise UpstreamApiError(
                f"Lantmäteriet API error: {response.text}",
                response.status_code,
                "Lantmäteriet",
            )

        return response.json()

    # ------------------------------------------------------------------
    # Fastighetsindelning / Adress
    # ------------------------------------------------------------------

    @staticmethod
    def _to_property_info(feature: Dict[str, Any]) -> Dict[str, Any]:
        props = feature.get("properties") or {}
        info = {
            "objektidentitet": props.get("objektidentitet"),
            "beteckning": props.get("beteckning"),
            "kommun": props.get("kommun") or "",
            "lan": props.get("lan") or "",
        }

        area = props.get("area")
        geometry = feature.get("geometry")
        if geometry:
            try:
                wgs84_geometry = geometry_to_wgs84(geometry)
                if area is None and geometry.get("type") in ("Polygon", "MultiPolygon"):
                    area = round(geometry_area(geometry), 1)
            except ValidationError as exc:
                logger.warning(
                    "Dropping unusable geometry of property %s: %s", info["beteckning"], exc.message
                )
            else:
                info["geometry"] = wgs84_geometry
        if area is not None:
            info["area"] = area

        return info

    async def find_property_by_point(self, client: httpx.AsyncClient, point: Sweref99Point) -> Dict[str, Any]:
        """Properties containing a SWEREF99 TM point"""
        point = normalize_to_sweref99(point)
        url = f"{self.API_BASE_URL}/fastighetsindelning/v1/hitta"

        try:
            data = await self._authenticated_get(client, url, {"geometri": f"POINT({point.x} {point.y})"})
        except UpstreamApiError as exc:
            if exc.status_code == 404:
                return {"properties": [], "total_count": 0}
            raise

        properties = [self._to_property_info(f) for f in data.get("features") or []]
        return {"properties": properties, "total_count": len(properties)}

    async def find_property_by_address(self, client: httpx.AsyncClient, address: str) -> Dict[str, Any]:
        """Geocode the address, then look up the property at the first match."""
        url = f"{self.API_BASE_URL}/adress/v1/sok"

        try:
            data = await self._authenticated_get(client, url, {"adress": address})
        except UpstreamApiError as exc:
            if exc.status_code == 404:
                return {"properties": [], "total_count": 0}
            raise

        features = data.get("features") or []
        if not features:
            return {"properties": [], "total_count": 0}

        coordinates = (features[0].get("geometry") or {}).get("coordinates")
        if not coordinates or len(coordinates) < 2:
            return {"properties": [], "total_count": 0}

        x, y = coordinates[0], coordinates[1]
        logger.debug("Address %r geocoded to SWEREF99TM(%s, %s)", address, x, y)
        result = await self.find_property_by_point(client, Sweref99Point(x=x, y=y))
        result["matched_address"] = features[0].get("properties") or {}
        return result

    async def find_property_by_designation(
        self, client: httpx.AsyncClient, designation: str
    ) -> Optional[Dict[str, Any]]:
        """Property by designation (beteckning), or None."""
        url = f"{self.API_BASE_URL}/fastighetsindelning/v1/sok"

        try:
            data = await self._authenticated_get(client, url, {"beteckning": designation})
        except UpstreamApiError as exc:
            if exc.status_code == 404:
                return None
            raise

        features = data.get("features") or []
        if not features:
            return None
        return self._to_property_info(features[0])

    # ------------------------------------------------------------------
    # Höjddata
    # ------------------------------------------------------------------

    async def get_elevation(self, client: httpx.AsyncClient, point: Sweref99Point) -> Dict[str, Any]:
        """Elevation (RH 2000) at a SWEREF99 TM point"""
        point = normalize_to_sweref99(point)
        url = f"{self.API_BASE_URL}/hojd/v1/punkt"
        params = {
            "nord": point.y,
            "ost": point.x,
            "referenssystem": "3006",
        }

        try:
            data = await self._authenticated_get(client, url, params)
        except UpstreamApiError as exc:
            if exc.status_code == 404:
                raise NotFoundError("Elevation", f"SWEREF99TM({point.x}, {point.y})") from exc
            raise

        # no height over open water
        if data.get("hojd") is None:
            raise NotFoundError("Elevation", f"SWEREF99TM({point.x}, {point.y})")

        return {
            "elevation": data["hojd"],
            "reference_system": data.get("referenssystem") or "RH 2000",
            "coordinate": point.to_dict(),
        }

    # ------------------------------------------------------------------
    # WMTS / WMS
    # ------------------------------------------------------------------

    def _wmts_map_url(self, base_url: str, layer: str, point: Sweref99Point, width: float, height: float) -> Dict[str, Any]:
        point = normalize_to_sweref99(point)
        bbox = bbox_around(point, width / 2, height / 2)
        return {
            "url": f"{base_url}/{layer}/default/3006/{{z}}/{{y}}/{{x}}.png",
            "layers": [layer],
            "crs": CRS_SWEREF99TM,
            "bbox": bbox.to_dict(),
        }

    def get_topographic_map_url(self, point: Sweref99Point, width: float = 1000, height: float = 1000) -> Dict[str, Any]:
        """WMTS URL template for the topographic map (width/height in metres)"""
        return self._wmts_map_url(self.OPEN_TOPOWEBB_WMTS, "topowebb", point, width, height)

    def get_orthophoto_map_url(self, point: Sweref99Point, width: float = 1000, height: float = 1000) -> Dict[str, Any]:
        """WMTS URL template for orthophotos (width/height in metres)"""
        return self._wmts_map_url(self.OPEN_ORTOFOTO_WMTS, "orto", point, width, height)

    def get_property_map_url(
        self,
        bbox: BoundingBox,
        width: int = 800,
        height: int = 600,
        format: str = "png",
    ) -> Dict[str, Any]:
        """WMS GetMap URL for property boundaries (width/height in pixels)"""
        validate_bbox(bbox)
        if format not in ("png", "jpeg"):
            raise ValidationError(f"Unsupported image format: {format}. Use 'png' or 'jpeg'", "format")

        width = min(int(width), MAX_IMAGE_SIZE)
        height = min(int(height), MAX_IMAGE_SIZE)
        if width <= 0 or height <= 0:
            raise ValidationError("Image width and height must be positive", "size")

        params = {
            "SERVICE": "WMS",
            "VERSION": "1.3.0",
            "REQUEST": "GetMap",
            "LAYERS": "Fastighetsindelning",
            "CRS": CRS_SWEREF99TM,
            # WMS 1.3.0 axis order for EPSG:3006 is northing, easting
            "BBOX": f"{bbox.min_y},{bbox.min_x},{bbox.max_y},{bbox.max_x}",
            "WIDTH": str(width),
            "HEIGHT": str(height),
            "FORMAT": "image/jpeg" if format == "jpeg" else "image/png",
            "TRANSPARENT": "true",
        }

        return {
            "url": f"{self.PROPERTY_WMS}?{urlencode(params)}",
            "layers": ["Fastighetsindelning"],
            "crs": CRS_SWEREF99TM,
            "bbox": bbox.to_dict(),
            "image_size": {"width": width, "height": height},
            "format": params["FORMAT"],
        }

    # ------------------------------------------------------------------
    # STAC
    # ------------------------------------------------------------------

    @staticmethod
    def _find_asset_href(assets: Dict[str, Any], key: str, role: str) -> Optional[str]:
        if key in assets and assets[key].get("href"):
            return assets[key]["href"]
        for asset in assets.values():
            if role in (asset.get("roles") or []):
                return asset.get("href")
        return None

    @classmethod
    def _to_stac_summary(cls, item: Dict[str, Any]) -> Dict[str, Any]:
        props = item.get("properties") or {}
        assets = item.get("assets") or {}

        summary = {
            "id": item.get("id"),
            "datetime": props.get("datetime"),
            "bbox": item.get("bbox"),
        }

        resolution = props.get("resolution", props.get("gsd"))
        if resolution is not None:
            summary["resolution"] = resolution

        bands = [b.get("common_name") or b.get("name") for b in props.get("eo:bands") or []]
        if bands:
            summary["bands"] = bands

        download_url = cls._find_asset_href(assets, "data", "data")
        if download_url:
            summary["download_url"] = download_url
        thumbnail_url = cls._find_asset_href(assets, "thumbnail", "thumbnail")
        if thumbnail_url:
            summary["thumbnail_url"] = thumbnail_url

        return summary

    async def search_stac(
        self,
        client: httpx.AsyncClient,
        bbox: BoundingBox,
        collection: str = "ortofoto",
        max_results: int = 10,
    ) -> List[Dict[str, Any]]:
        """
        Search STAC items (COG) covering a SWEREF99 TM area

        Args:
            bbox: Search area in SWEREF99 TM
            collection: "ortofoto" (imagery with NIR band) or "hojd" (terrain model)
            max_results: Maximum number of items returned
        """
        if collection not in self.STAC_SEARCH_URLS:
            raise ValidationError(
                f"Unknown collection: {collection}. Use one of {', '.join(STAC_COLLECTIONS)}",
                "collection",
            )
        if max_results < 1:
            raise ValidationError("max_results must be at least 1", "max_results")

        # STAC bbox is always lon/lat (CRS84)
        wgs84 = sweref99_bbox_to_wgs84(bbox)
        params = {
            "bbox": f"{wgs84.min_lon},{wgs84.min_lat},{wgs84.max_lon},{wgs84.max_lat}",
            "limit": max_results,
        }

        url = self.STAC_SEARCH_URLS[collection]
        response = await client.get(url, params=params, headers={"Accept": "application/geo+json"})
        if not response.is_success:
            raise UpstreamApiError(
                f"Lantmäteriet STAC error: {response.text}",
                response.status_code,
                f"Lantmäteriet STAC ({collection})",
            )

        data = response.json()
        items = [self._to_stac_summary(item) for item in data.get("features") or []]
        return items[:max_results]
