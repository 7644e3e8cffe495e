"""Typed responses for the device's command sink (``POST /``)."""

from __future__ import annotations

from pybevvy.models._base import BevvyBaseModel, LenientFloat, LenientStr


class CommandResult(BevvyBaseModel):
    """Reply to a ``target=`` or ``name=`` form submission."""

    success: bool = False
    message: LenientStr = None
    target: LenientFloat = None
