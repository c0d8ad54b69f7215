"""Persistence layer for labels."""
