"""GitHub webhook handling: normalization, routing and per-event handlers."""
