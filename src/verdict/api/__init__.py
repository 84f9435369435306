"""REST API for the verdict pipeline."""
