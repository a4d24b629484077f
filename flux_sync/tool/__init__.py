"""Command line interface for flux-sync."""
