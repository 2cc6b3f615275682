"""Storegate API routes."""
