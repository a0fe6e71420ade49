"""MediaHub — media-sharing backend.

Accounts with token-based sessions, profile and avatar management,
channel profiles with subscriber counts, and watch history.
"""

__version__ = "0.1.0"
