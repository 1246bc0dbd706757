"""Core settings, logging, exceptions and service wiring."""
