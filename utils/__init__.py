"""
Helpers around the auto-labeling pipeline.

Contains:
- `config`       : pydantic-settings `Settings` and `get_settings`
- `ingestion`    : image file harvesting and data-URI encoding
- `batch`        : sequential per-image labeling with per-image results
- `draw_results` : colour, filter and scaling rules for box overlays
"""
