"""GatePilot HTTP service."""
