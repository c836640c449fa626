# src/logbatch/engine/__init__.py
"""Buffering, limit enforcement, scheduling and delivery.

Components:
- buffer: EventBuffer, per-destination pending events
- limits: pure size/count predicates and byte-accurate clipping
- policy: oversized-message handling (clip / error / console)
- provisioner: ResourceProvisioner, idempotent group/stream creation
- orchestrator: FlushOrchestrator, drain + deliver + halve-and-retry
- scheduler: FlushScheduler, periodic flush trigger
- batcher: LogBatcher, the public engine
- stream_logger: StreamLogger, per-destination convenience handle
"""

from logbatch.engine.batcher import LogBatcher
from logbatch.engine.buffer import EventBuffer
from logbatch.engine.orchestrator import FlushOrchestrator
from logbatch.engine.provisioner import ResourceProvisioner
from logbatch.engine.scheduler import FlushScheduler
from logbatch.engine.stream_logger import StreamLogger

__all__ = [
    "EventBuffer",
    "FlushOrchestrator",
    "FlushScheduler",
    "LogBatcher",
    "ResourceProvisioner",
    "StreamLogger",
]
