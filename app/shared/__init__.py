"""
Shared module package.

Contains cross-cutting concerns used across bounded contexts:
- Error handling and mapping
- Security middleware
- Rate limiting
- Retry with exponential backoff for gateway calls
- Logging configuration
"""
