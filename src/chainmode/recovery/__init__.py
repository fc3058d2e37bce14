"""Recovery hints for non-fatal tool failures."""
