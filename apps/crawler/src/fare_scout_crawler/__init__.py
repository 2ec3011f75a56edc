"""Flight fare ingestion from the flightsfinder search portal."""
