"""Run telemetry: in-process event bus and event type names."""
