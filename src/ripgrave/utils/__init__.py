"""Utility helpers for ripgrave."""
