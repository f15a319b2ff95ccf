from prometheus_client import Counter, Histogram

api_calls = Counter(
    name="api_calls",
    documentation="Number of api calls completed successfully",
    labelnames=("path", "method", "status"),
    namespace="resticd",
)
backup_result = Counter(
    name="backup_result",
    documentation="Number of finished backups",
    labelnames=("status",),
    namespace="resticd",
)
backup_duration = Histogram(
    name="backup_duration",
    documentation="Duration of successful backup as reported by restic",
    namespace="resticd",
)
backup_rejected = Counter(
    name="backup_rejected",
    documentation="Number of backups rejected because another one was running",
    namespace="resticd",
)
