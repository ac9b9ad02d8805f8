"""Message listing and moderation endpoints."""
