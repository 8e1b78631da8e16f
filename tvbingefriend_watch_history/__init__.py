"""Watch history service and client-side screen controllers."""
