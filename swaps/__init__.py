"""
SwapRoute - swap order execution

Accepts swap orders, routes each one to the venue offering the best output,
executes it with bounded retries and streams every status change to live
observers.

Packages:
- orders: order, quote and status-update models
- venues: venue quote sources (simulated Raydium / Meteora)
- routing: quote aggregation and best-venue selection
- execution: order state machine, retry policy, error taxonomy
- events: status hub (per-order pub/sub + status cache)
- persistence: order repositories (memory, SQL)
- queue: dispatch queue with concurrency and rate limits
- service: intake service used by the HTTP API and CLI
"""

__version__ = "0.1.0"
