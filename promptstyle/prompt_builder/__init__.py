"""Trailer prompt builder: option catalog, composer, and session layer."""
