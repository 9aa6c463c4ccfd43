"""Exports and charts for vault activity."""
