"""Time-off requests — validation and lifecycle."""
