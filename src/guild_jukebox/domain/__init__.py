"""Domain layer - queue state, value objects, events and errors.

Nothing in this layer performs I/O.
"""
