"""
Pytest suite for the EcoSpin orders backend.

Test categories:
- Unit tests: stores, cache, allocator, lifecycle service, notifications
- API tests: full FastAPI app over httpx with an injected order service
- Edge case tests: concurrency, idempotent payment confirmation, stale refreshes
"""
