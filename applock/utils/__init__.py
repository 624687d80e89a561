"""AppLock utilities."""
