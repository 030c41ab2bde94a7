"""Domain layer for the Savorly backend.

Entities, value objects, ports and errors for identity, orders, menu catalog
and aggregate metrics, decoupled from the storage and identity adapters.
"""
