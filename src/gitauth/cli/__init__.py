"""gitauth command line interface."""
