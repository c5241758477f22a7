"""Backends, registry, segmentation and retry machinery."""
