"""Authentication and sessions.

Learn: Two signed JWTs per login:
1. Access token → short-lived, stateless, sent as cookie or Bearer header
2. Refresh token → longer-lived, mirrored on the user row; only the
   stored value can be exchanged, so each refresh token works once

Both resolve to the same user id claim (`_id`).
"""
