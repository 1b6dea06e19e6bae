"""Search, download and analyse the visible structure of iOS apps, and report on it."""

__version__ = "0.1.0"