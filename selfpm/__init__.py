"""selfpm - webhook ingestion and reconciliation jobs for Self project managers."""
__version__ = "0.1.0"
