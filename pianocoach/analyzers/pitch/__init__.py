"""Pitch estimation."""
