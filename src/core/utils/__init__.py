"""Core utility functions."""

from core.utils.instance_id import generate_instance_id
from core.utils.json_serializers import json_serializer

__all__ = ["json_serializer", "generate_instance_id"]
