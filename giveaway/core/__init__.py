"""Core modules: configuration, logging, errors and dependency wiring."""
