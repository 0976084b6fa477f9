"""Domain layer — records, rule sets, and payload validation.

This layer depends only on the stdlib.
It must never import from services, infrastructure, commands, or config.
"""
