"""
Gameplay modules for BodyCount.

- shared: domain exceptions and the base service pattern
- rewards: the kill-count milestone reward engine
"""
