"""Ingestion, allocation and finalization services."""
