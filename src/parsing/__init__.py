"""Fetching, robots.txt policy and HTML extraction."""
