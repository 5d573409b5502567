"""Auth — identity verification and role checks."""
