"""ArtistLink - link artist platform accounts and reconcile their media catalog."""

__version__ = "0.1.0"
