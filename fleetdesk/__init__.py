"""Fleet vehicle booking backend."""
