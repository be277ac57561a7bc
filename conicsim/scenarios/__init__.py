"""
Simulation Scenarios
====================

Pre-configured scenarios for patched-conic transition testing.
"""

from .capture import CaptureScenario
from .escape import EscapeScenario

__all__ = [
    'CaptureScenario',
    'EscapeScenario',
]
