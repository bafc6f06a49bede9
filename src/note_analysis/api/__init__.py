"""HTTP API: application factory and dependency wiring."""
