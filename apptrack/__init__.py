"""Job application tracker core: filtering, sorting, pagination, caching and analytics."""

__version__ = "0.1.0"
