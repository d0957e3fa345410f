"""
Infrastructure adapters for the coaching bounded context.

Each adapter implements a domain port (ABC) and connects
to external systems: trade exports, Gemini, Qdrant.
"""
