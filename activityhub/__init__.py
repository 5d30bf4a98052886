"""Activity routing, aggregation and notification service."""
