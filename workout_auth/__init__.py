"""Authentication and account service for the workout app."""

__version__ = "0.1.0"
