"""
Assistify Agent

Ability registry, dispatcher and audit trail for an AI store assistant.
"""

__version__ = "0.1.0"
