"""Bundled lesson JSON documents."""
