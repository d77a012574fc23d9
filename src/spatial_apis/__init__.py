from spatial_apis.spatial_engine import ContainmentPoint, SpatialEngine

__all__ = ["ContainmentPoint", "SpatialEngine"]
