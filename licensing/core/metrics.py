# licensing/core/metrics.py
from functools import wraps
from time import time
from flask import request
from typing import Dict, Any, Callable
from threading import Lock


class Metrics:
    """Track provisioning outcomes and endpoint timings"""

    def __init__(self):
        self._lock = Lock()
        self.counters: Dict[str, int] = {}
        self.response_times: Dict[str, list] = {}

    def increment(self, name: str, amount: int = 1):
        with self._lock:
            self.counters[name] = self.counters.get(name, 0) + amount

    def track_request(self, endpoint: str, duration: float, status_code: int):
        with self._lock:
            self.response_times.setdefault(endpoint, []).append(duration)
            self.counters["requests"] = self.counters.get("requests", 0) + 1
            if status_code >= 400:
                self.counters["request_errors"] = self.counters.get("request_errors", 0) + 1

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            stats = {"counters": dict(self.counters), "endpoints": {}}

            for endpoint, times in self.response_times.items():
                if times:
                    avg_time = sum(times) / len(times)
                    stats["endpoints"][endpoint] = {
                        "average_response_time": f"{avg_time:.3f}s",
                        "request_count": len(times),
                    }

            return stats

    def reset(self):
        """Reset all metrics - useful for testing"""
        with self._lock:
            self.counters = {}
            self.response_times = {}


# Global metrics instance
metrics = Metrics()


def track_performance(f: Callable):
    """Decorator to track endpoint performance"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        start_time = time()

        try:
            response = f(*args, **kwargs)
        except Exception:
            metrics.track_request(request.endpoint, time() - start_time, 500)
            raise

        if isinstance(response, tuple):
            status = response[1]
        else:
            status = response.status_code

        metrics.track_request(request.endpoint, time() - start_time, status)
        return response

    return decorated_function


def get_current_metrics():
    return metrics.get_stats()
