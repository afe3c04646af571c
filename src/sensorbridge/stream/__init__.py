"""Sensor stream bridging: framing, field extraction, and WebSocket fan-out."""

from __future__ import annotations

from sensorbridge.stream.assembler import AssemblerState, FrameAssembler
from sensorbridge.stream.broadcaster import Broadcaster
from sensorbridge.stream.extractor import FieldExtractor, FieldRule, extract_frame
from sensorbridge.stream.frame import SensorFrame
from sensorbridge.stream.server import SubscriberServer
from sensorbridge.stream.session import BridgeSession, bridge_session
from sensorbridge.stream.source import LineSource, ReaderLineSource, SerialLineSource

__all__ = [
    "AssemblerState",
    "BridgeSession",
    "Broadcaster",
    "FieldExtractor",
    "FieldRule",
    "FrameAssembler",
    "LineSource",
    "ReaderLineSource",
    "SensorFrame",
    "SerialLineSource",
    "SubscriberServer",
    "bridge_session",
    "extract_frame",
]
