"""Application layer: services that orchestrate domain and infrastructure."""
