"""swapsend: deliver transactions by direct broadcast or private relay bundle."""

__version__ = "0.1.0"
