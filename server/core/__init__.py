"""Estimation, ingestion and export helpers used by the API routes."""
