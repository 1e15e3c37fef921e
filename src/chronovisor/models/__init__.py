"""Pydantic models: mapping specs, Chrono events and diagnostics."""
