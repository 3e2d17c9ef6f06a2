"""GeoQuest: location-based quiz walks and their admin backend."""
