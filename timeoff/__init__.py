"""Time-off and overtime balance engine."""
