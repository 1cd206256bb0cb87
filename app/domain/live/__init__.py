"""
Live streaming domain logic.

Includes:
- stream: Stream session management (session table, transcoder processes, outputs).
"""
