"""CLI package for ingesting telemetry and querying the device registry service."""
