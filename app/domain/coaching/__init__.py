"""
Coaching bounded context — domain layer.

This module contains all domain logic for the coaching context:
- Trade records and their validation
- Behavioral anomaly scoring
- Pattern indicators derived from a trade batch
- Workflow run state
"""
