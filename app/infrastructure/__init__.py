"""
Infrastructure layer package.

Contains concrete implementations (adapters) of the ports
defined in the domain layer. This is where the trade export, the
Gemini API and the vector store are reached.
"""
