"""Generate LookML views and explores from dbt manifest and catalog artifacts."""

__version__ = "0.1.0"
