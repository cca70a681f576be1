"""Notepad core: lines, debounced re-parsing and bulk commit."""
