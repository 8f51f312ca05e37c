"""Maps pricing domain errors to JSON error responses."""
