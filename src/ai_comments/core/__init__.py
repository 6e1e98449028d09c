"""Core data model: change inputs, analysis records and stream events."""
