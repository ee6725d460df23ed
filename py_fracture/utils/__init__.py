"""Utilities for applications embedding the fracture core."""
