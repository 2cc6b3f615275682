"""Storegate API middleware."""
