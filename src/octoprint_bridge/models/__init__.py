"""Pydantic models for OctoPrint API responses and the mirrored state tree.

This module defines the data structures used by the bridge to parse
API responses into typed objects and to describe tree nodes.
"""

from .common import ApiModel, as_number
from .files import FileEntry, FileListing, FileRecord, sanitize_identity
from .jobs import JobDetails, JobFile, JobProgress, JobResponse, PrintJob
from .plugins import LayerInfo, LayerProgress
from .printer import ConnectionCurrent, ConnectionInfo, PrinterDetails, TemperatureReading, VersionInfo
from .state import (
    OPERATIONAL_PHASES,
    PRINTING_PHASES,
    PrinterPhase,
    SyncEngineState,
    is_operational,
    is_printing,
    parse_phase,
)
from .system import SystemCommand, SystemCommandListing
from .tree import NodeKind, NodeSpec, StateChange, StateValue, TreeNode

# ruff: noqa: RUF022
__all__ = [
    # Common
    "ApiModel",
    "as_number",
    # Files
    "FileEntry",
    "FileListing",
    "FileRecord",
    "sanitize_identity",
    # Jobs
    "JobDetails",
    "JobFile",
    "JobProgress",
    "JobResponse",
    "PrintJob",
    # Plugins
    "LayerInfo",
    "LayerProgress",
    # Printer
    "ConnectionCurrent",
    "ConnectionInfo",
    "PrinterDetails",
    "TemperatureReading",
    "VersionInfo",
    # State
    "OPERATIONAL_PHASES",
    "PRINTING_PHASES",
    "PrinterPhase",
    "SyncEngineState",
    "is_operational",
    "is_printing",
    "parse_phase",
    # System
    "SystemCommand",
    "SystemCommandListing",
    # Tree
    "NodeKind",
    "NodeSpec",
    "StateChange",
    "StateValue",
    "TreeNode",
]
