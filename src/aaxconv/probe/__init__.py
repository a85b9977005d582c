"""Input inspection: metadata extraction, field sanitizing and validation."""
