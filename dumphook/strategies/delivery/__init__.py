"""Delivery strategies, one per chat platform."""
