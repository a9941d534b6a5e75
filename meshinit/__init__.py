"""
meshinit - A container-init supervisor for workloads running beside a mesh sidecar.

Waits for the sidecar proxy to report readiness, runs the workload as a child
process with inherited standard streams, propagates its exit status, and can
ask the sidecar to shut down once the workload is gone.
"""

__version__ = "0.1.0"
