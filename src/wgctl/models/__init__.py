"""Data models for controller addresses, identities and card authorizations."""

from .device import AuthRecord, CallbackTarget, DeviceAddress, DeviceInfo
