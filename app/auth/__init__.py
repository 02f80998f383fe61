"""Authentication: password hashing, tokens and session lifecycle."""
