"""BreakShield: a voluntary cool-down for distracting apps and websites."""

__version__ = "1.0.0"
