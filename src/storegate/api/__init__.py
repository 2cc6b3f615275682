"""Storegate HTTP API."""
