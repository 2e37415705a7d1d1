"""Pydantic models shared by the wire and storage layers."""

from plcid.models.base import PLCBaseModel

__all__ = ["PLCBaseModel"]
