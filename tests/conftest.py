from __future__ import annotations

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import Point, box

from ward_deprivation.config import PipelineSettings
from ward_deprivation.ingestion.load_addresses import normalise_addresses

CRS = "EPSG:27700"

# Inside the British National Grid extent, where 27700 <-> 4326 round-trips
GRID_X, GRID_Y = 383000, 398000

# Three wards side by side; C has no LSOA under it.
#
#   y=10 +---------+---------+---------+
#        |  L2     |  L3     |         |
#   y=5  +---------+---------+    C    |
#        |  L1 (spans A and B)|        |
#   y=0  +---------+---------+---------+
#       x=0   A   x=10  B   x=20      x=30


@pytest.fixture
def settings():
    return PipelineSettings(target_city="Testville", crs=CRS)


@pytest.fixture
def wards():
    return gpd.GeoDataFrame(
        {
            "ward_name": ["Ashby", "Brook", "Castle"],
            "label_x": [5.0, 15.0, 25.0],
            "label_y": [5.0, 5.0, 5.0],
        },
        geometry=[box(0, 0, 10, 10), box(10, 0, 20, 10), box(20, 0, 30, 10)],
        crs=CRS,
    )


@pytest.fixture
def lsoas():
    return gpd.GeoDataFrame(
        {
            "lsoa_code": ["E01000001", "E01000002", "E01000003"],
            "lsoa_name": ["Testville 001A", "Testville 001B", "Testville 001C"],
        },
        geometry=[box(0, 0, 20, 5), box(0, 5, 10, 10), box(10, 5, 20, 10)],
        crs=CRS,
    )


def on_grid(gdf):
    """Move a fixture frame from local coordinates into the national grid."""
    moved = gdf.copy()
    moved["geometry"] = gdf.geometry.translate(GRID_X, GRID_Y)
    if "label_x" in moved.columns:
        moved["label_x"] = moved["label_x"] + GRID_X
        moved["label_y"] = moved["label_y"] + GRID_Y
    return moved


def address_points():
    pts = []
    # L1: 7 addresses in Ashby, 3 in Brook
    pts += [Point(x + 0.5, 2) for x in range(7)]
    pts += [Point(x + 0.5, 2) for x in range(11, 14)]
    # L2: 10 in Ashby
    pts += [Point(x + 0.5, 7) for x in range(10)]
    # L3: 4 in Brook
    pts += [Point(x + 0.5, 8) for x in range(12, 16)]
    # outside everything, on the Ashby/Brook edge, and in Castle (no LSOA)
    pts += [Point(50, 50), Point(10, 7), Point(25, 5)]
    return pts


@pytest.fixture
def addresses():
    raw = gpd.GeoDataFrame(geometry=address_points(), crs=CRS)
    return normalise_addresses(raw, CRS)


@pytest.fixture
def population():
    return pd.DataFrame(
        {
            "lsoa_name": ["Testville 001A", "Testville 001B", "Testville 001C"],
            "population": [1000, 500, 800],
        }
    )


@pytest.fixture
def imd():
    return pd.DataFrame(
        {
            "lsoa_code": ["E01000001", "E01000002", "E01000003"],
            "imd_rank": [5, 100, 20],
        }
    )
