"""Disaster Hub backend."""
