"""Mission lifecycle: profile gate, slots, locks, repositories and service."""
