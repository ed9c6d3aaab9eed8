"""
Pneuma - Remote platform layer for pactum.

Provides the platform API client, lazy pagination over its list endpoints,
and ABI checks for contract invocations.

Uses httpx + eth-abi.
"""
