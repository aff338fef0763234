from .cpu_task import LoadSimulator, busy_cpu_task, fib
from .handler import Reply, handle, render

__all__ = ["LoadSimulator", "Reply", "busy_cpu_task", "fib", "handle", "render"]
