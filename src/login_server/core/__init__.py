"""Session coordination state machine."""
