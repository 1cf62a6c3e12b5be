"""
Prometheus metrics definitions for the gateway.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Upload metrics
files_uploaded_total = Counter(
    'files_uploaded_total',
    'Total files stored',
    ['category']
)

uploads_rejected_total = Counter(
    'uploads_rejected_total',
    'Total uploads rejected before storage',
    ['reason']
)

upload_bytes = Histogram(
    'upload_bytes',
    'Size of stored uploads in bytes',
    buckets=[1024, 64 * 1024, 1024 ** 2, 10 * 1024 ** 2, 100 * 1024 ** 2, 550 * 1024 ** 2]
)

# Download / stream metrics
bytes_served_total = Counter(
    'bytes_served_total',
    'Total bytes served to clients',
    ['mode']
)

range_rejections_total = Counter(
    'range_rejections_total',
    'Total Range headers rejected as unsatisfiable'
)

# Accounting metrics
accounting_failures_total = Counter(
    'accounting_failures_total',
    'Total accounting writes that failed and were skipped',
    ['operation']
)
