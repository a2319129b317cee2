"""Timeline assembly: the occurrence pipeline, refresh cycle and rotation state."""
