"""Ingestion service: evaluates incoming readings against alert thresholds."""
