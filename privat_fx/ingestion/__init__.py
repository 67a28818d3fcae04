"""Ingestion helpers for the PrivatBank exchange-rate archive."""
