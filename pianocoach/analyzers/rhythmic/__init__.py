"""Energy envelope, beat and tempo detection."""
