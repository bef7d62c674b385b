#!/usr/bin/env python3
"""
MCP server for Lantmäteriet (Sweden) geodata
- Fastighetsindelning / Adress : property search
- Höjddata : elevation
- Topowebb / Ortofoto (WMTS) and Fastighetsindelning (WMS) : map URLs
- STAC Bild / STAC Höjd : downloadable COG rasters
- WGS84 <-> SWEREF99 TM conversion
"""

import asyncio
import json
import logging
import os
from typing import Any, Dict, Optional

import httpx
from mcp.server import Server
from mcp.types import Tool, TextContent
import mcp.server.stdio

from coordinates import (
    CRS_SWEREF99TM,
    CRS_WGS84,
    BoundingBox,
    Wgs84BoundingBox,
    Wgs84Point,
    bbox_around,
    bbox_from_arguments,
    normalize_to_sweref99,
    point_from_arguments,
    require_number,
    sweref99_to_wgs84,
    validate_bbox,
    wgs84_bbox_to_sweref99,
    wgs84_to_sweref99,
)
from datasets_catalog import get_all_categories, get_datasets_by_category, search_datasets
from errors import LantmaterietToolError, ValidationError
from lantmateriet_services import STAC_COLLECTIONS, LantmaterietServices
from token_cache import TokenCache

# Configuration
LOG_LEVEL = os.getenv("LANTMATERIET_LOG_LEVEL", "INFO").upper()
HTTP_TIMEOUT_SECONDS = 30.0

logger = logging.getLogger("lantmateriet.mcp")

# Initialization
app = Server("lantmateriet-mcp")
token_cache = TokenCache.from_env()
lm_services = LantmaterietServices(token_cache)


def _json_content(payload: Any) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, ensure_ascii=False, indent=2))]


def _size_arg(arguments: Dict[str, Any], key: str, default: float) -> float:
    value = arguments.get(key)
    if value is None:
        return default
    value = require_number(value, key)
    if value <= 0:
        raise ValidationError(f"{key} must be positive", key)
    return value


def _text_arg(arguments: Dict[str, Any], key: str, default: Optional[str]) -> Optional[str]:
    value = arguments.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string, got {value!r}", key)
    return value


def _bbox_to_sweref99(bbox) -> BoundingBox:
    if isinstance(bbox, Wgs84BoundingBox):
        return wgs84_bbox_to_sweref99(bbox)
    validate_bbox(bbox)
    return bbox


async def _execute_tool_logic(
    name: str,
    arguments: Dict[str, Any],
    client: httpx.AsyncClient,
    services: LantmaterietServices,
) -> list[TextContent]:
    # ====================================================================
    # FASTIGHETSINDELNING
    # ====================================================================
    if name == "lm_property_search":
        query_type = arguments.get("query_type")

        if query_type == "coordinate":
            point = point_from_arguments(arguments)
            sweref99_point = normalize_to_sweref99(point)
            result = await services.find_property_by_point(client, sweref99_point)

            return _json_content({
                "query_type": "coordinate",
                "coordinate_system": CRS_WGS84 if isinstance(point, Wgs84Point) else CRS_SWEREF99TM,
                "search_coordinate": point.to_dict(),
                "result": result,
                "note": "No property found at this location. Check if coordinates are within Sweden."
                if result["total_count"] == 0 else None,
            })

        elif query_type == "address":
            address = _text_arg(arguments, "address", None)
            if not address:
                raise ValidationError("Address is required for address query", "address")

            result = await services.find_property_by_address(client, address)

            return _json_content({
                "query_type": "address",
                "search_address": address,
                "result": result,
                "note": "No property found for this address. Try a more specific address."
                if result["total_count"] == 0 else None,
            })

        elif query_type == "designation":
            designation = _text_arg(arguments, "designation", None)
            if not designation:
                raise ValidationError("Designation is required for designation query", "designation")

            prop = await services.find_property_by_designation(client, designation)

            return _json_content({
                "query_type": "designation",
                "search_designation": designation,
                "found": prop is not None,
                "property": prop,
                "note": 'No property found with this designation. Format should be "KOMMUN TRAKT BLOCK:ENHET".'
                if prop is None else None,
            })

        raise ValidationError(
            f"Unknown query type: {query_type}. Use coordinate, address or designation",
            "query_type",
        )

    # ====================================================================
    # HÖJDDATA
    # ====================================================================
    elif name == "lm_elevation":
        point = point_from_arguments(arguments)
        result = await services.get_elevation(client, normalize_to_sweref99(point))

        return _json_content({
            "elevation_meters": result["elevation"],
            "reference_system": result["reference_system"],
            "coordinate_system": CRS_WGS84 if isinstance(point, Wgs84Point) else CRS_SWEREF99TM,
            "coordinate": point.to_dict(),
            "sweref99_coordinate": result["coordinate"],
        })

    # ====================================================================
    # MAPS (WMTS / WMS)
    # ====================================================================
    elif name == "lm_map_url":
        map_type = arguments.get("map_type")
        width = _size_arg(arguments, "width", 1000)
        height = _size_arg(arguments, "height", 1000)

        if map_type in ("topographic", "orthophoto"):
            point = point_from_arguments(arguments)
            sweref99_point = normalize_to_sweref99(point)
            if map_type == "topographic":
                result = services.get_topographic_map_url(sweref99_point, width, height)
            else:
                result = services.get_orthophoto_map_url(sweref99_point, width, height)

            return _json_content({
                "map_type": map_type,
                "url": result["url"],
                "url_template_note": "WMTS URL template - replace {z}/{y}/{x} with tile coordinates",
                "layers": result["layers"],
                "crs": result["crs"],
                "center": point.to_dict(),
                "bbox": result["bbox"],
                "license": "CC-BY 4.0 Lantmäteriet",
                "auth_required": False,
            })

        elif map_type == "property":
            bbox = bbox_from_arguments(arguments)
            if bbox is None:
                raise ValidationError(
                    "For property map, provide a bounding box as min_lat/min_lon/max_lat/max_lon (WGS84) "
                    "or min_x/min_y/max_x/max_y (SWEREF99TM)",
                    "bbox",
                )
            sweref99_bbox = _bbox_to_sweref99(bbox)
            result = services.get_property_map_url(
                sweref99_bbox,
                width=int(width),
                height=int(height),
                format=_text_arg(arguments, "format", "png"),
            )

            return _json_content({
                "map_type": "property",
                "url": result["url"],
                "layers": result["layers"],
                "crs": result["crs"],
                "input_bbox": bbox.to_dict(),
                "internal_bbox": result["bbox"],
                "image_size": result["image_size"],
                "format": result["format"],
                "auth_required": False,
            })

        raise ValidationError(
            f"Unknown map type: {map_type}. Use topographic, orthophoto or property",
            "map_type",
        )

    # ====================================================================
    # STAC
    # ====================================================================
    elif name == "lm_stac_search":
        bbox = bbox_from_arguments(arguments)
        if bbox is not None:
            search_bbox = _bbox_to_sweref99(bbox)
        else:
            try:
                center = normalize_to_sweref99(point_from_arguments(arguments))
            except ValidationError as exc:
                raise ValidationError(
                    "Either a bounding box (min_x/min_y/max_x/max_y) or a center point "
                    f"(x/y or latitude/longitude) is required: {exc.message}",
                    "search_area",
                ) from exc
            radius = _size_arg(arguments, "radius", 500)
            search_bbox = bbox_around(center, radius, radius)

        collection = _text_arg(arguments, "collection", "ortofoto")
        max_results = int(_size_arg(arguments, "max_results", 10))
        items = await services.search_stac(client, search_bbox, collection, max_results)

        return _json_content({
            "collection": collection,
            "search_area": search_bbox.to_dict(),
            "result_count": len(items),
            "items": items,
            "notes": {
                "format": "COG (Cloud Optimized GeoTIFF) with Deflate compression",
                "crs": "SWEREF99 TM (EPSG:3006)",
                "license": "CC-BY 4.0 - attribution required",
                "nir_bands": "Orthophotos may include NIR (near-infrared) band for vegetation analysis"
                if collection == "ortofoto" else None,
                "authentication": "Download URLs require free Geotorget account authentication",
            },
        })

    # ====================================================================
    # CATALOG
    # ====================================================================
    elif name == "lm_describe":
        category = _text_arg(arguments, "category", "all")
        query = _text_arg(arguments, "query", None)
        datasets = search_datasets(query) if query else get_datasets_by_category(category)
        auth_configured = services.is_auth_configured()

        return _json_content({
            "category": category,
            "query": query,
            "auth_configured": auth_configured,
            "auth_note": "API credentials configured. Authenticated datasets are accessible."
            if auth_configured
            else "API credentials not configured. Only open datasets (CC-BY) are accessible.",
            "dataset_count": len(datasets),
            "datasets": datasets,
            "categories_available": get_all_categories(),
            "coordinate_systems": {
                "native": "SWEREF99 TM (EPSG:3006)",
                "supported_input": ["SWEREF99 TM (EPSG:3006)", "WGS84 (EPSG:4326)"],
                "note": "Give either latitude/longitude (WGS84) or x/y (SWEREF99 TM), never both",
            },
            "tools_summary": {
                "lm_property_search": "Find properties by coordinate, address, or designation",
                "lm_elevation": "Get terrain height at a point",
                "lm_map_url": "Generate map tile URLs (topographic, orthophoto, property)",
                "lm_stac_search": "Find downloadable orthophoto or elevation rasters",
                "lm_convert_coordinates": "Convert a point between WGS84 and SWEREF99 TM",
                "lm_describe": "This tool - lists available datasets",
            },
            "registration_url": "https://geotorget.lantmateriet.se",
            "hvd_info": "High Value Datasets became free in February 2025 under PSI directive",
        })

    # ====================================================================
    # COORDINATE CONVERSION
    # ====================================================================
    elif name == "lm_convert_coordinates":
        point = point_from_arguments(arguments)
        if isinstance(point, Wgs84Point):
            converted = wgs84_to_sweref99(point)
        else:
            converted = sweref99_to_wgs84(point)

        return _json_content({
            "input": point.to_dict(),
            "output": converted.to_dict(),
        })

    else:
        raise ValueError(f"Unknown tool: {name}")


# ============================================================================
# TOOLS
# ============================================================================

_POINT_PROPERTIES = {
    "latitude": {"type": "number", "description": "Latitude (WGS84). Stockholm ~59.33, Gothenburg ~57.71, Malmo ~55.61"},
    "longitude": {"type": "number", "description": "Longitude (WGS84). Stockholm ~18.07, Gothenburg ~11.97, Malmo ~13.00"},
    "x": {"type": "number", "description": "Easting (SWEREF99 TM). Stockholm ~674000. Use instead of latitude/longitude"},
    "y": {"type": "number", "description": "Northing (SWEREF99 TM). Stockholm ~6580000. Use instead of latitude/longitude"},
}

_WGS84_BBOX_PROPERTIES = {
    "min_lat": {"type": "number", "description": "Bbox minimum latitude (WGS84)"},
    "min_lon": {"type": "number", "description": "Bbox minimum longitude (WGS84)"},
    "max_lat": {"type": "number", "description": "Bbox maximum latitude (WGS84)"},
    "max_lon": {"type": "number", "description": "Bbox maximum longitude (WGS84)"},
}

_SWEREF99_BBOX_PROPERTIES = {
    "min_x": {"type": "number", "description": "Min easting SWEREF99 TM (e.g., 670000)"},
    "min_y": {"type": "number", "description": "Min northing SWEREF99 TM (e.g., 6575000)"},
    "max_x": {"type": "number", "description": "Max easting SWEREF99 TM (e.g., 680000)"},
    "max_y": {"type": "number", "description": "Max northing SWEREF99 TM (e.g., 6585000)"},
}


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools"""
    return [
        Tool(
            name="lm_property_search",
            description=(
                "Find Swedish properties by coordinate, address, or official designation. "
                "Returns property boundaries as WGS84 geometry, designation, municipality, and county. "
                "For coordinate queries give latitude/longitude (WGS84) or x/y (SWEREF99 TM). "
                "Requires Lantmäteriet API credentials."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "query_type": {
                        "type": "string",
                        "enum": ["coordinate", "address", "designation"],
                        "description": 'Search method: "coordinate" (find by location), "address" (find by street address), '
                                       '"designation" (find by property name like "STOCKHOLM VASASTADEN 1:1")',
                    },
                    **_POINT_PROPERTIES,
                    "address": {"type": "string", "description": 'Street address, e.g. "Drottninggatan 1, Stockholm"'},
                    "designation": {"type": "string", "description": 'Property designation, e.g. "STOCKHOLM VASASTADEN 1:1"'},
                },
                "required": ["query_type"],
            },
        ),
        Tool(
            name="lm_elevation",
            description=(
                "Get terrain elevation (height above sea level) at a specific coordinate in Sweden. "
                "Returns height in meters using the RH 2000 reference system. "
                "Requires Lantmäteriet API credentials."
            ),
            inputSchema={
                "type": "object",
                "properties": {**_POINT_PROPERTIES},
            },
        ),
        Tool(
            name="lm_map_url",
            description=(
                "Generate map URLs for Swedish geodata. "
                "Topographic and orthophoto maps use open CC-BY WMTS (no auth): give a center point and a size in meters. "
                "Property boundaries use WMS: give a bounding box and an image size in pixels (max 2048). "
                "A WGS84 box is converted corner by corner, so a very tall, narrow box far from 15°E may be "
                "rejected as inverted; use x/y bounds for those."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "map_type": {
                        "type": "string",
                        "enum": ["topographic", "orthophoto", "property"],
                        "description": 'Map type: "topographic" (terrain with roads/labels), "orthophoto" (aerial imagery), '
                                       '"property" (property boundaries)',
                    },
                    **_POINT_PROPERTIES,
                    **_WGS84_BBOX_PROPERTIES,
                    **_SWEREF99_BBOX_PROPERTIES,
                    "width": {"type": "number", "default": 1000, "description": "Width in meters (topographic/orthophoto) or pixels (property)"},
                    "height": {"type": "number", "default": 1000, "description": "Height in meters (topographic/orthophoto) or pixels (property)"},
                    "format": {"type": "string", "enum": ["png", "jpeg"], "default": "png", "description": "Image format (property map)"},
                },
                "required": ["map_type"],
            },
        ),
        Tool(
            name="lm_stac_search",
            description=(
                "Search Lantmäteriet STAC catalog for downloadable orthophoto or elevation data. "
                "Returns COG (Cloud Optimized GeoTIFF) download URLs. Orthophotos include NIR bands for vegetation analysis. "
                "Specify either a bounding box or a center point + radius. "
                "A WGS84 box is converted corner by corner, so a very tall, narrow box far from 15°E may be "
                "rejected as inverted; use x/y bounds or a center point for those. "
                "Example: x: 674000, y: 6580000, radius: 500 for Stockholm area."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    **_SWEREF99_BBOX_PROPERTIES,
                    **_WGS84_BBOX_PROPERTIES,
                    **_POINT_PROPERTIES,
                    "radius": {"type": "number", "default": 500, "description": "Search radius in meters around the center point"},
                    "collection": {
                        "type": "string",
                        "enum": list(STAC_COLLECTIONS),
                        "default": "ortofoto",
                        "description": '"ortofoto" for aerial imagery with NIR bands, "hojd" for elevation data',
                    },
                    "max_results": {"type": "integer", "default": 10, "description": "Maximum results to return"},
                },
            },
        ),
        Tool(
            name="lm_describe",
            description=(
                "List available Lantmäteriet geodata datasets with descriptions, access requirements, and formats. "
                "Shows the High Value Datasets (HVD) that became free in February 2025. "
                "Use to understand what data is available before querying."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "category": {
                        "type": "string",
                        "enum": get_all_categories(),
                        "default": "all",
                        "description": 'Filter: "hvd", "property", "elevation", "imagery", "all"',
                    },
                    "query": {"type": "string", "description": "Keyword search (e.g. 'WMTS', 'building')"},
                },
            },
        ),
        Tool(
            name="lm_convert_coordinates",
            description=(
                "Convert a point between WGS84 (latitude/longitude) and SWEREF99 TM (x/y). "
                "Give exactly one of the two pairs; the point must lie within Sweden."
            ),
            inputSchema={
                "type": "object",
                "properties": {**_POINT_PROPERTIES},
            },
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Run a tool"""
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as client:
            return await _execute_tool_logic(name, arguments or {}, client, lm_services)
    except LantmaterietToolError as exc:
        logger.warning("%s failed: %s", name, exc)
        return _json_content(exc.to_dict())
    except httpx.HTTPStatusError as exc:
        logger.warning("%s failed with HTTP %s", name, exc.response.status_code)
        return _json_content({
            "error": "HTTP error while calling external API",
            "status_code": exc.response.status_code,
            "detail": exc.response.text,
        })
    except httpx.HTTPError as exc:
        logger.error("%s: HTTP communication error: %s", name, exc)
        return _json_content({"error": f"HTTP communication error: {exc}"})
    except ValueError as exc:
        return _json_content({"error": str(exc)})


async def main():
    """Main entry point"""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(
        "Starting Lantmäteriet MCP server (credentials configured: %s)",
        token_cache.has_credentials(),
    )
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        await app.run(
            read_stream,
            write_stream,
            app.create_initialization_options()
        )


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
