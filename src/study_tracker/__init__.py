"""Personal study-task tracker with a persistent single-active-timer."""

__version__ = "0.1.0"
