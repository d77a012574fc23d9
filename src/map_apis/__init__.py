from map_apis.data_types import ExternalPlace, flexible_string
from map_apis.map_api import MapAPI, MapAPIError
from map_apis.type_projection import map_external_type

__all__ = ["ExternalPlace", "MapAPI", "MapAPIError", "flexible_string", "map_external_type"]
