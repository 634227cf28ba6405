"""SafeGuard moderation relay service."""
