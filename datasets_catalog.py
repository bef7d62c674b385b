"""
Local catalog of Lantmäteriet datasets
Source : https://geotorget.lantmateriet.se

High Value Datasets (HVD) became free in February 2025 under the PSI directive.
Open datasets (CC-BY) need no credentials; the others need an API account.
"""

from errors import ValidationError


HVD_DATASETS = {
    "Fastighetsindelning": {
        "name_swedish": "Fastighetsindelning",
        "description": "Property boundaries and designations for all real estate in Sweden",
        "access": "authenticated",
        "license": "CC0 (public domain)",
        "formats": ["GeoJSON", "WFS", "WMS"],
        "api_type": "OGC API Features",
    },
    "Byggnad": {
        "name_swedish": "Byggnad",
        "description": "Building footprints with attributes like type, height, and construction year",
        "access": "authenticated",
        "license": "CC0 (public domain)",
        "formats": ["GeoJSON", "WFS"],
        "api_type": "OGC API Features",
    },
    "Höjddata": {
        "name_swedish": "Höjddata",
        "description": "Digital elevation model (DEM) for Sweden. Point elevation queries and raster coverage.",
        "access": "authenticated",
        "license": "CC0 (public domain)",
        "formats": ["JSON", "GeoTIFF"],
        "api_type": "REST API / WCS",
    },
    "Ortofoto": {
        "name_swedish": "Ortofoto",
        "description": "Aerial imagery/orthophotos covering all of Sweden",
        "access": "open",
        "license": "CC-BY 4.0",
        "formats": ["PNG", "JPEG", "WMTS"],
        "api_type": "WMTS",
    },
    "Ortnamn": {
        "name_swedish": "Ortnamn",
        "description": "Place names database with geographic locations",
        "access": "authenticated",
        "license": "CC0 (public domain)",
        "formats": ["GeoJSON", "WFS"],
        "api_type": "OGC API Features",
    },
    "Adress": {
        "name_swedish": "Adress",
        "description": "Swedish address register with geocoding",
        "access": "authenticated",
        "license": "CC0 (public domain)",
        "formats": ["JSON", "GeoJSON"],
        "api_type": "REST API",
    },
    "Marktäcke": {
        "name_swedish": "Marktäcke",
        "description": "Land cover classification (forest, water, urban, agricultural, etc.)",
        "access": "authenticated",
        "license": "CC0 (public domain)",
        "formats": ["GeoJSON", "GeoTIFF"],
        "api_type": "OGC API Features / WCS",
    },
    "Hydrografi": {
        "name_swedish": "Hydrografi",
        "description": "Water features: lakes, rivers, streams, coastline",
        "access": "authenticated",
        "license": "CC0 (public domain)",
        "formats": ["GeoJSON", "WFS"],
        "api_type": "OGC API Features",
    },
    "Administrativ indelning": {
        "name_swedish": "Administrativ indelning",
        "description": "Administrative boundaries: municipalities, counties, electoral districts",
        "access": "authenticated",
        "license": "CC0 (public domain)",
        "formats": ["GeoJSON", "WFS"],
        "api_type": "OGC API Features",
    },
    "Topowebb": {
        "name_swedish": "Topowebb",
        "description": "Pre-rendered topographic map tiles covering Sweden",
        "access": "open",
        "license": "CC-BY 4.0",
        "formats": ["PNG", "WMTS"],
        "api_type": "WMTS",
    },
}

# "hvd" and "all" cover the whole catalog
CATEGORIES = {
    "property": ["Fastighetsindelning", "Byggnad", "Adress"],
    "elevation": ["Höjddata"],
    "imagery": ["Ortofoto", "Topowebb"],
}


def get_dataset(name: str) -> dict:
    """Metadata of one dataset, or None"""
    return HVD_DATASETS.get(name)


def get_datasets_by_category(category: str = "all") -> list:
    """
    Datasets of one category
    category: "hvd", "property", "elevation", "imagery", "all"
    """
    if category in ("hvd", "all"):
        names = list(HVD_DATASETS)
    elif category in CATEGORIES:
        names = CATEGORIES[category]
    else:
        raise ValidationError(f"Unknown category: {category}. Use one of {', '.join(get_all_categories())}", "category")

    return [{"name": name, **HVD_DATASETS[name]} for name in names]


def search_datasets(query: str) -> list:
    """Keyword search over name, description, formats and API type"""
    query_lower = query.lower()
    results = []

    for name, metadata in HVD_DATASETS.items():
        searchable = (
            f"{name} {metadata['description']} {' '.join(metadata['formats'])} {metadata['api_type']}"
        ).lower()
        if query_lower in searchable:
            results.append({"name": name, **metadata})

    return results


def get_all_categories() -> list:
    return ["hvd", "all", *CATEGORIES]
