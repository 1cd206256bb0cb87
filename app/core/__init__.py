"""
Core service plumbing: configuration, logging and API envelopes.
"""
