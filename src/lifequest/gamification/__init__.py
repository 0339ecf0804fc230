"""Rewards, levels, LifeScore and achievements."""
