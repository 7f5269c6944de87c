# keeper/metrics.py — in-process request counters

from collections import Counter

_requests = Counter()
_statuses = Counter()


def increment_request(path, status_code):
    _requests[path] += 1
    _statuses[str(status_code)] += 1


def get_metrics():
    return {
        "requests_total": sum(_requests.values()),
        "requests_by_path": dict(_requests),
        "responses_by_status": dict(_statuses),
    }
