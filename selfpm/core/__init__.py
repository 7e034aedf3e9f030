"""Core interfaces, errors and the job scheduler."""
