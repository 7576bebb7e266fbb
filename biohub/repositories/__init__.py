"""Database access functions. Each takes the caller's Session first and only flushes."""
