"""Infrastructure layer: storage tiers and the Redis client."""
