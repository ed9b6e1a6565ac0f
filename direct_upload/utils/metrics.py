"""
Prometheus metrics definitions for the API and Celery workers.
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
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Upload protocol metrics
uploads_issued_total = Counter(
    'uploads_issued_total',
    'Total signed upload URLs issued'
)

uploads_rejected_total = Counter(
    'uploads_rejected_total',
    'Total upload requests that did not get a signed URL',
    ['reason']
)

uploads_confirmed_total = Counter(
    'uploads_confirmed_total',
    'Total pending uploads promoted to completed uploads'
)

upload_confirmations_failed_total = Counter(
    'upload_confirmations_failed_total',
    'Total confirmations that did not promote a pending upload',
    ['reason']
)

pending_uploads_swept_total = Counter(
    'pending_uploads_swept_total',
    'Total expired pending uploads deleted by the sweeper'
)

upload_issue_duration_seconds = Histogram(
    'upload_issue_duration_seconds',
    'Time spent issuing a signed upload URL',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)
