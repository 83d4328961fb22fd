"""State/store layer.

This package is the single source of truth for channel values: it holds the
last known value per channel, the listeners to notify when a value changes,
and the producer/transform pair wired to each channel.
"""
