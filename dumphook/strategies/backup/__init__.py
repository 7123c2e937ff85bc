"""Backup strategies, one per database engine."""
