"""Device discovery, safety filtering, image verification and writing."""
