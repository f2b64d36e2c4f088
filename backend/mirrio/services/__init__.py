"""Services Layer — round controller, statement selection, leaderboard and scheduler.

Invariants:
    - Every service method is a single fetch-then-write unit on one AsyncSession
    - Race safety comes from store constraints, never from in-process locks
"""
