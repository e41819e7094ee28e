"""
Edge gateway package for the Prism DEX frontend.

The gateway fronts the read-mostly JSON resources, enforcing:
- Rate limiting: distributed sliding window per client and route group
- Caching: keyed TTL cache with in-process single-flight
- Resilience: circuit breakers, retries and last-good fallbacks per resource

Structure:
- app.main: FastAPI app, routes, and middleware wiring.
- app.adapters: HTTP clients for the subgraph, RPC node and token metadata.
- app.aggregation: Resilient resources (price, tokens, pools, stats).
- app.caching: Cache keys and the keyed TTL cache.
- app.ratelimit: Sliding-window limiter and middleware.
- app.storage: Redis, in-memory and filesystem stores.
"""
