"""Hard limits of the CloudWatch Logs PutLogEvents API.

https://docs.aws.amazon.com/AmazonCloudWatch/latest/logs/cloudwatch_limits_cwl.html
https://docs.aws.amazon.com/AmazonCloudWatchLogs/latest/APIReference/API_PutLogEvents.html
"""

# Bytes the sink adds to every event for its own bookkeeping
FIXED_EVENT_OVERHEAD = 26

# 256 KiB minus the per-event overhead
MAX_EVENT_SIZE = 2**18 - FIXED_EVENT_OVERHEAD

MAX_BATCH_COUNT = 10_000

# 1 MiB, overhead included
MAX_BATCH_BYTES = 2**20
