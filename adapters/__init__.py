"""Collaborator implementations for the carealert protocols.

- `adapters.memory`: in-process directory, stores, realtime hub and email outbox
- `adapters.channels`: HTTP email and push-gateway channels
"""
