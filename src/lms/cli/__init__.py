"""Admin command line interface."""
