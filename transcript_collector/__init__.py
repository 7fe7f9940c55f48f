"""Transcript Collector - meeting transcript ingestion and lifecycle management."""
