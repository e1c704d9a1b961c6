"""Alteration scheduling and garment tracking domain."""
