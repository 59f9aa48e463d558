from .job_worker_pool import JobWorkerPool

__all__ = ["JobWorkerPool"]
