"""
Platform-side LTI 1.3 (LTI Advantage) message construction and signing.
"""

from .adapter import LaunchConfig, LtiAdvantageAdapter
from .keys import KeySet
from .messages import MessageType

__all__ = ["KeySet", "LaunchConfig", "LtiAdvantageAdapter", "MessageType"]
