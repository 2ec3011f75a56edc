"""Turn extracted itineraries into stored records."""
