"""
Auth subsystem (plaintext, local-only; not a security mechanism).

- users.py: User records and the user directory
- session.py: login/logout with `currentUser` persisted through storage
"""
