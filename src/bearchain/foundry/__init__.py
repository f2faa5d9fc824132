"""
Foundry - local chain harness.

Decodes forge/anvil JSON records, indexes broadcast artifacts and manages
the lifecycle of an ephemeral anvil node for integration tests.
"""
