"""Loudness measurement."""
