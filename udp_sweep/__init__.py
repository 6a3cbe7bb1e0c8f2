"""
UDP Sweep - application-layer ping sweep

Sends tagged UDP probes to a set of hosts running the echo responder,
correlates the reflected replies and reports per-host loss, timeouts
and round-trip times.
"""

__version__ = "1.0.0"
__author__ = "Network Team"
