"""
Domain layer containing core business logic and domain services.

Submodules:
- live: Live audio streaming domain logic (stream sessions, transcoder supervision).
- utils: Domain-specific utilities (e.g., ID generation).
"""
