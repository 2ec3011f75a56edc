"""Shared schemas for Fare Scout."""
