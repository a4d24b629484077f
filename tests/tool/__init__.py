"""Tests for the flux-sync command line tool."""
