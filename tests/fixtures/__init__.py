"""Test fixtures for the OnlyFits feed core.

This package provides reusable test fixtures:
- posts: Factories for wire posts, feed posts, tagged items and pages
- api: An in-process fake of the OnlyFits API and clients wired to it
"""
