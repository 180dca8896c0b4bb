"""Short-lived GitHub App installation token broker."""

__version__ = "0.1.0"
