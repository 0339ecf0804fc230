"""Mission and step content generation."""
