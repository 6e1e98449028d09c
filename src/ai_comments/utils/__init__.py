"""Utility helpers: confidence estimation, stream framing and text handling."""
