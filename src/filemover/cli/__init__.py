"""FileMover command line interface."""
