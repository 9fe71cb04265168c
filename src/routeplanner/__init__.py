"""Delivery route planning and annotation service."""
