"""Services for CompileStrength."""
