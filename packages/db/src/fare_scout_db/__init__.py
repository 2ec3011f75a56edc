"""Database layer for Fare Scout."""
