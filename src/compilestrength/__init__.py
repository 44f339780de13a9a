"""CompileStrength: AI-assisted workout routine generation with usage metering."""

__version__ = "0.1.0"
