"""
Remote model access for the auto-labeling pipeline.

This module exposes a singleton accessor for:
- the Moondream vision-language API client (`get_moondream`)
"""
