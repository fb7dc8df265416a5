"""
Codec Module

Converts ConfigurationRecord to and from backend storage representations.
"""

from .record_codec import RecordCodec

__all__ = ["RecordCodec"]
