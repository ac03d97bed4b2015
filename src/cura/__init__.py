"""Cura: queue job-tailoring LLM work and review resume suggestions inline."""

__version__ = "0.1.0"
