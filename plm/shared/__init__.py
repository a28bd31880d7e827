"""Cross-cutting helpers shared by every layer (enums, utils, telemetry)."""
