"""shipit: release an npm package with crash-safe rollback."""

__version__ = "0.1.0"
