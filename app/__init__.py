"""
TradeCoach: trade performance coaching service.

Application package root. This is a modular monolith using
hexagonal architecture (ports & adapters) with domain-driven design.

Bounded contexts:
    - coaching: Behavioral anomaly scoring and the asynchronous coaching workflow.

Layers:
    - domain: Pure business logic, entities, ports (ABCs), errors.
    - application: Use cases, DTOs, workflow orchestration.
    - infrastructure: Adapters (trade export, Gemini, Qdrant) implementing domain ports.
    - interfaces: FastAPI routers, Pydantic schemas.
    - shared: Cross-cutting concerns (errors, retry, security, logging).
"""
