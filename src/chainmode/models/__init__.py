"""Model provider interface, retry helpers, and the replay provider."""
