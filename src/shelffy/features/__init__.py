"""Shelffy features."""
