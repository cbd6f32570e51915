"""Core runtime primitives: errors, scheduling, background tasks and the runtime context."""
