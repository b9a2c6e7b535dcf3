"""Core types: Result, exit codes, configuration."""
