"""WardSafe services.

Per-turn flow through the services:
- safety_service: sanitization, injection screening, rate limiting, output filter
- crisis_engine: deterministic emergency override (model bypassed)
- llm_service: OpenAI-compatible backend client
- audit_service: append-only, hash-chained audit trail per session
- chat_gateway: session lifecycle, pipeline orchestration, HTTP boundary
"""
