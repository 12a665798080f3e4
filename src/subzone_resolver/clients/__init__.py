"""HTTP clients for external geocoding services."""
