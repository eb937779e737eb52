"""Pure domain layer: models, errors, change detection and policy naming.

Nothing in this package talks to the network.
"""
