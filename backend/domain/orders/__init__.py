"""Orders domain module: reservations and their status state machine."""
