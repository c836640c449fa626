# src/logbatch/clients/__init__.py
"""Remote sink clients.

Available clients:
- CloudWatchLogsClient: AWS CloudWatch Logs via boto3

Any object implementing LogSinkClient can be passed to LogBatcher.configure().
"""

from logbatch.clients.cloudwatch import CloudWatchLogsClient
from logbatch.clients.protocols import LogSinkClient

__all__ = ["CloudWatchLogsClient", "LogSinkClient"]
