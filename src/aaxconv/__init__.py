"""aaxconv - batch conversion of Audible AAX audiobooks with FFmpeg."""

__version__ = "0.1.0"
