"""
Coaching interface layer: routers, schemas and dependency wiring.
"""
