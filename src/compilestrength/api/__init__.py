"""HTTP API for CompileStrength."""
