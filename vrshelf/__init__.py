"""Building blocks for a VR video library: heatmaps, previews, sessions, scraping and bundles."""

__version__ = "0.1.0"