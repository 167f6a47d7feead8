"""Provider-specific payload handling."""
