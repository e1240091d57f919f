"""
Geocoding de tiendas vía Google Places Text Search.
"""
