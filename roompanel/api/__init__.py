"""aiohttp web layer: JSON API and kiosk display pages."""
