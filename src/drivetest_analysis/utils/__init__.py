"""Shared helpers: metric registry, local time and telemetry loading."""
