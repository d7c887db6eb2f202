"""
Simulation module for using libmonado without a running Monado.

Provides an in-process runtime implementing the libmonado C API.
"""

from .simulator import (
    SimulatedRuntime,
    SimulatedClient,
    SimulatedDevice,
    SimulatedTrackingOrigin,
    SimulatedCall,
    create_default_runtime,
)

__all__ = [
    "SimulatedRuntime",
    "SimulatedClient",
    "SimulatedDevice",
    "SimulatedTrackingOrigin",
    "SimulatedCall",
    "create_default_runtime",
]
