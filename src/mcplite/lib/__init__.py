"""Internal helpers shared across mcplite."""
