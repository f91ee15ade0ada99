"""Internal helpers for environment, telemetry gating and statement inspection."""
