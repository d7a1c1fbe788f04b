"""Clone a running chain's storage into an independently bootable fork."""

__version__ = "0.1.0"
