"""Health, readiness and version probes."""
