"""
Services Module

Clients for calling the other services of the platform. Each client has an
abstract base (the contract the orchestrator depends on) and an HTTP
implementation built on httpx.

Services:
    - agents: delivery agent reservation and release
    - orders: order lookup and partial update
"""
